"""Two-tier writes: try with the status attribute, fall back to the legacy flag."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from taskboard.core.errors import SchemaMismatchError
from taskboard.observability.metrics import log_metric

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _note_fallback(exc: SchemaMismatchError, action: str) -> None:
    """Re-raise mismatches on anything but status; otherwise record the retry."""
    if exc.attribute != "status":
        raise exc
    logger.info("Status column missing; retrying %s without status", action)
    log_metric("store.schema_fallback", 1, metadata={"action": action})


def write_with_status_fallback(write: Callable[[bool], T], action: str) -> T:
    """Run ``write(True)``; on a missing status column retry once with ``write(False)``."""
    try:
        return write(True)
    except SchemaMismatchError as exc:
        _note_fallback(exc, action)
    return write(False)


async def awrite_with_status_fallback(write: Callable[[bool], Awaitable[T]], action: str) -> T:
    try:
        return await write(True)
    except SchemaMismatchError as exc:
        _note_fallback(exc, action)
    return await write(False)
