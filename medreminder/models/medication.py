"""Medication and dose history models."""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medreminder.db.base import Base
from medreminder.db.types import IsoDateTime


class Medication(Base):
    """A medication the owner takes every ``interval_hours``.

    ``total_doses`` of zero marks an open-ended course.
    """

    __tablename__ = "medications"
    __table_args__ = (
        CheckConstraint("interval_hours > 0", name="ck_medications_interval_positive"),
        CheckConstraint("total_doses >= 0", name="ck_medications_total_doses"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, unique=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    dose_quantity: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    interval_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    next_dose_at: Mapped[datetime | None] = mapped_column(IsoDateTime())
    total_doses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    dose_events: Mapped[list["DoseEvent"]] = relationship(
        "DoseEvent",
        back_populates="medication",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class DoseEvent(Base):
    """Append-only record of a dose being taken."""

    __tablename__ = "dose_events"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, unique=True)
    medication_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("medications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    taken_at: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)

    medication: Mapped[Medication] = relationship(
        "Medication", back_populates="dose_events"
    )
