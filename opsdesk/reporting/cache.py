"""Result cache for report runs.

Results are memoized per normalized request for a fixed TTL. Expiry is lazy:
an entry is only checked, and evicted, when the same key is read again.

Identical requests that arrive while one is still executing attach to the
running task instead of starting another query. The in-flight entry is
removed once that task settles, whether it succeeded or failed; failures are
never cached. Every caller gets its own copy of the result, so changing one
never touches the cached entry.
"""

import asyncio
import json
import logging
import os
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

from opsdesk.reporting.schemas import ReportRequest, ReportResult

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = float(os.getenv("REPORT_CACHE_TTL_SECONDS", "120"))


def make_cache_key(request: ReportRequest) -> str:
    """Deterministic key: sorted-key JSON of every field of the request."""
    return json.dumps(request.model_dump(mode="json"), sort_keys=True, separators=(",", ":"), default=str)


class ResultCache:
    """TTL cache plus in-flight table, both keyed by ``make_cache_key``."""

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, ReportResult]] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}

    def get(self, request: ReportRequest) -> Optional[ReportResult]:
        cached = self._get(make_cache_key(request))
        return None if cached is None else cached.model_copy(deep=True)

    def set(self, request: ReportRequest, result: ReportResult) -> None:
        self._entries[make_cache_key(request)] = (self._clock(), result.model_copy(deep=True))

    def clear(self) -> None:
        """Drop every cached result. In-flight executions are left to finish."""
        self._entries.clear()

    def stats(self) -> Dict[str, int]:
        return {"entries": len(self._entries), "in_flight": len(self._in_flight)}

    async def get_or_execute(self, request: ReportRequest,
                             execute: Callable[[], Awaitable[ReportResult]]) -> ReportResult:
        """Return a cached result, join an identical running execution, or start one."""
        key = make_cache_key(request)

        cached = self._get(key)
        if cached is not None:
            logger.debug("Report cache hit for %s", request.entity)
            return cached.model_copy(deep=True)

        task = self._in_flight.get(key)
        if task is not None:
            logger.debug("Joining in-flight report run for %s", request.entity)
        else:
            logger.debug("Report cache miss for %s", request.entity)
            task = asyncio.ensure_future(self._run(key, execute))
            self._in_flight[key] = task

        # A caller that goes away must not cancel the query other callers share
        result = await asyncio.shield(task)
        return result.model_copy(deep=True)

    async def _run(self, key: str, execute: Callable[[], Awaitable[ReportResult]]) -> ReportResult:
        try:
            result = await execute()
        except Exception as e:
            logger.warning("Report run failed, nothing cached: %s", e)
            raise
        else:
            self._entries[key] = (self._clock(), result)
            return result
        finally:
            self._in_flight.pop(key, None)

    def _get(self, key: str) -> Optional[ReportResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        created_at, result = entry
        if self._clock() - created_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return result
