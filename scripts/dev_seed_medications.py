from __future__ import annotations

import asyncio
import uuid

from medreminder.core.clock import local_now
from medreminder.core.config import get_settings
from medreminder.db.session import create_schema, get_sessionmaker
from medreminder.schemas.medication import MedicationCreate
from medreminder.services.medication_service import create_medication, list_medications

OWNER_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")

SAMPLES = [
    MedicationCreate(name="Amoxicillin", dose_quantity="500mg", interval_hours=8, total_doses=21),
    MedicationCreate(name="Ibuprofen", dose_quantity="400mg", interval_hours=6),
    MedicationCreate(name="Vitamin D", dose_quantity="1 capsule", interval_hours=24),
]


async def main() -> None:
    settings = get_settings()
    await create_schema(settings.database_url)
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        existing = await list_medications(session, owner_id=OWNER_ID)
        if existing:
            print(f"Owner {OWNER_ID} already has {len(existing)} medications")
            return

        now = local_now()
        for payload in SAMPLES:
            medication = await create_medication(session, payload, owner_id=OWNER_ID, now=now)
            print(f"Created {medication.name}, next dose at {medication.next_dose_at:%Y-%m-%d %H:%M}")

    print(f"Use header X-Owner-ID: {OWNER_ID}")


if __name__ == "__main__":
    asyncio.run(main())
