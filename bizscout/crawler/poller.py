# bizscout/crawler/poller.py
"""
Polling loop for asynchronous managed-crawl jobs.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from bizscout.errors import JobFailedError, JobTimeoutError

StatusFetcher = Callable[[str], Awaitable[Mapping[str, Any]]]
ProgressCallback = Callable[..., Awaitable[None]]
Sleeper = Callable[[float], Awaitable[None]]

# caller-visible progress band while pages are being crawled
PROGRESS_FLOOR = 30
PROGRESS_SPAN = 70

_FAILED_STATUSES = ("failed", "cancelled")


def progress_percent(completed: int, total: int) -> int:
    """Map ``completed/total`` into the 30–100 band."""
    if total <= 0:
        return PROGRESS_FLOOR
    ratio = max(0.0, min(1.0, completed / total))
    return int(round(ratio * PROGRESS_SPAN)) + PROGRESS_FLOOR


class JobPoller:
    """Polls a job handle until it completes, fails or runs out of attempts."""

    def __init__(
        self,
        fetch_status: StatusFetcher,
        *,
        interval: float = 3.0,
        max_attempts: int = 20,
        sleep: Sleeper = asyncio.sleep,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._fetch_status = fetch_status
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._on_progress = on_progress
        self.logger = logging.getLogger("BizScout")

    async def poll(self, handle: str) -> List[Mapping[str, Any]]:
        """Return the page list of a completed job.

        Raises :class:`JobFailedError` when the API reports ``failed`` or
        ``cancelled`` and :class:`JobTimeoutError` when the budget runs out.
        A transient status error is retried; if the final attempt errors, that
        error is re-raised.
        """
        for attempt in range(1, self.max_attempts + 1):
            self.logger.debug("Polling attempt %d/%d for job %s", attempt, self.max_attempts, handle)
            try:
                status = await self._fetch_status(handle)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.logger.warning("Polling attempt %d for job %s failed: %s", attempt, handle, exc)
                if attempt == self.max_attempts:
                    raise
                await self._sleep(self.interval)
                continue

            state = str(status.get("status") or "").lower()
            await self._report(status)

            if state == "completed" and status.get("data") is not None:
                pages = list(status.get("data") or [])
                self.logger.info("Job %s completed after %d attempts (%d pages)", handle, attempt, len(pages))
                return pages

            if state in _FAILED_STATUSES:
                message = status.get("error") or f"Job failed with status: {state}"
                raise JobFailedError(str(message), handle=handle)

            if attempt < self.max_attempts:
                await self._sleep(self.interval)

        raise JobTimeoutError(
            f"Job polling timeout after {self.max_attempts} attempts "
            f"({self.max_attempts * self.interval:g}s)",
            handle=handle,
        )

    async def _report(self, status: Mapping[str, Any]) -> None:
        if self._on_progress is None:
            return
        completed, total = status.get("completed"), status.get("total")
        if not isinstance(completed, int) or not isinstance(total, int) or total <= 0:
            return
        await self._on_progress(
            progress_percent(completed, total),
            f"Processing pages: {completed}/{total}",
        )
