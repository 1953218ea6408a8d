"""Process-wide logging setup."""

from __future__ import annotations

import logging

from asgi_correlation_id import CorrelationIdFilter

from medreminder.security.logging_filters import SensitiveFilter

_HANDLER_NAME = "medreminder"
_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the root logger."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(handler.get_name() == _HANDLER_NAME for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.addFilter(CorrelationIdFilter(uuid_length=8, default_value="-"))
    handler.addFilter(SensitiveFilter())
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
