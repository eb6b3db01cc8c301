"""Process-wide logging setup."""
from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(log_level: str = "INFO") -> None:
    """Attach a single stderr handler to the root logger."""
    level = logging.getLevelName(log_level.upper()) if isinstance(log_level, str) else log_level
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(handler, "_taskboard", False) for handler in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._taskboard = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # SQL echo only at DEBUG.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING if level > logging.DEBUG else level)
    logging.getLogger("httpx").setLevel(logging.WARNING)
