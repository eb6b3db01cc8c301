"""Debounced title suggestions for the board search box."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

Fetch = Callable[[str], Awaitable[List[str]]]


class SuggestionLookup:
    """Only the query still current after the quiet period is fetched, and only
    results for the query still current on arrival are kept."""

    def __init__(self, fetch: Fetch, delay: float = 0.3, min_length: int = 2) -> None:
        self.fetch = fetch
        self.delay = delay
        self.min_length = min_length
        self.query = ""
        self.results: List[str] = []

    def update(self, query: str) -> Optional[asyncio.Task]:
        """Record the latest input and schedule a lookup for it."""
        self.query = query
        if len(query.strip()) < self.min_length:
            self.results = []
            return None
        return asyncio.ensure_future(self._lookup(query))

    async def _lookup(self, query: str) -> Optional[List[str]]:
        await asyncio.sleep(self.delay)
        if query != self.query:
            return None
        found = await self.fetch(query.strip())
        if query != self.query:
            logger.debug("Dropping suggestions for stale query %r", query)
            return None
        self.results = found
        return found
