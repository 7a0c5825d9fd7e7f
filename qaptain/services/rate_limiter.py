"""
Concurrency control for test runs.

Each admitted run still gets its own browser session; the limiter only
bounds how many exist at once.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, Optional

from qaptain.errors import CapacityExceeded
from qaptain.utils.config import settings

logger = logging.getLogger(__name__)


@dataclass
class RunInfo:
    """Information about an active run."""
    run_id: str
    url: str
    started_at: datetime = field(default_factory=datetime.utcnow)


class RateLimiter:
    """Caps concurrent runs; a run over the cap is rejected, never queued."""

    def __init__(self, max_concurrent: Optional[int] = None):
        self.max_concurrent = max_concurrent or settings.MAX_CONCURRENT_RUNS
        self._active_runs: Dict[str, RunInfo] = {}
        self._lock = asyncio.Lock()

        logger.info(f"RateLimiter initialized: max_concurrent={self.max_concurrent}")

    async def acquire(self, run_id: str, url: str) -> bool:
        """
        Try to acquire a slot for a run.

        Returns:
            True if slot acquired, False if at limit
        """
        async with self._lock:
            if len(self._active_runs) >= self.max_concurrent:
                logger.warning(f"Rate limit: max concurrent runs ({self.max_concurrent}) reached")
                return False

            self._active_runs[run_id] = RunInfo(run_id=run_id, url=url)
            logger.info(
                f"Acquired slot for run {run_id}. "
                f"Active: {len(self._active_runs)}/{self.max_concurrent}"
            )
            return True

    async def release(self, run_id: str) -> bool:
        """Release a slot; False if the run held none."""
        async with self._lock:
            run_info = self._active_runs.pop(run_id, None)
            if run_info:
                logger.info(
                    f"Released slot for run {run_id}. "
                    f"Active: {len(self._active_runs)}/{self.max_concurrent}"
                )
                return True
            return False

    @asynccontextmanager
    async def slot(self, run_id: str, url: str) -> AsyncIterator[RunInfo]:
        """Hold a slot for the duration of a run, or raise CapacityExceeded."""
        if not await self.acquire(run_id, url):
            raise CapacityExceeded(
                "Too many runs in progress",
                details=f"At most {self.max_concurrent} runs may execute at once; retry later"
            )
        try:
            yield self._active_runs[run_id]
        finally:
            await self.release(run_id)

    async def get_status(self) -> Dict:
        """Get current rate limiter status."""
        async with self._lock:
            return {
                "max_concurrent": self.max_concurrent,
                "active_runs": len(self._active_runs),
                "available_slots": self.max_concurrent - len(self._active_runs),
                "active_run_ids": list(self._active_runs.keys())
            }


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get global rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter
