"""Lightweight tracing wrapper over Opik traces."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Any, Dict, Iterator, Optional

from taskboard.observability.client import get_opik_client

logger = logging.getLogger(__name__)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Any]:
    """Record a trace around a block.

    Yields the Opik trace object when a client is configured, otherwise None.
    Errors raised by the block are re-raised after the trace is closed.
    """
    client = get_opik_client()
    start = perf_counter()
    span = None
    if client is not None:
        tags = [tag for tag in (user_id and f"user:{user_id}", request_id and f"request:{request_id}") if tag]
        try:
            span = client.trace(name=name, metadata=dict(metadata or {}), tags=tags or None)
        except Exception:  # pragma: no cover - tracing must not break requests
            logger.debug("Failed to open trace %s", name, exc_info=True)
            span = None

    error: Optional[BaseException] = None
    try:
        yield span
    except BaseException as exc:
        error = exc
        raise
    finally:
        duration_ms = (perf_counter() - start) * 1000
        logger.debug("trace %s finished in %.2fms (error=%s)", name, duration_ms, type(error).__name__ if error else None)
        if span is not None:
            try:
                span.update(metadata={**(metadata or {}), "duration_ms": duration_ms, "error": repr(error) if error else None})
                span.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close trace %s", name, exc_info=True)
