from __future__ import annotations

import logging

from app.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    """Attach a single stream handler to the ``app`` logger tree."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    app_logger = logging.getLogger("app")
    app_logger.addHandler(handler)
    app_logger.setLevel((level or settings.log_level).upper())
    app_logger.propagate = False

    _CONFIGURED = True
    app_logger.debug("Logging configured at %s", logging.getLevelName(app_logger.level))


__all__ = ["LOG_FORMAT", "configure_logging"]
