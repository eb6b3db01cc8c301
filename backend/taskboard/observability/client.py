"""Opik client bootstrap."""
from __future__ import annotations

import logging
from typing import Optional

import opik

from taskboard.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[opik.Opik] = None


def init_opik() -> Optional[opik.Opik]:
    """Create the shared Opik client when tracing is enabled."""
    global _client
    if not settings.opik_enabled:
        return None
    if _client is not None:
        return _client
    try:
        _client = opik.Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
    except Exception:
        logger.exception("Opik initialisation failed; tracing disabled")
        _client = None
    return _client


def get_opik_client() -> Optional[opik.Opik]:
    return _client
