"""Metric emission helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger("taskboard.metrics")


def log_metric(name: str, value: float, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Emit a metric as a structured log line."""
    logger.info("metric name=%s value=%s metadata=%s", name, value, metadata or {})
