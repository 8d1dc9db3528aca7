"""bizscout.jobs: progress reporting to an external job-tracking store."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

__all__ = ["JobStore", "JobUpdate", "InMemoryJobStore", "ProgressReporter"]

logger = logging.getLogger("BizScout")


@runtime_checkable
class JobStore(Protocol):
    """Anything that can record crawl progress. May be sync or async."""

    def update_progress(
        self,
        job_id: Any,
        percent: int,
        note: Optional[str] = None,
        external_handle: Optional[str] = None,
    ) -> Any: ...


@dataclass(slots=True)
class JobUpdate:
    percent: int
    note: Optional[str] = None
    external_handle: Optional[str] = None


@dataclass
class InMemoryJobStore:
    """Keeps every update per job; used by the CLI and the tests."""

    updates: Dict[Any, List[JobUpdate]] = field(default_factory=dict)

    def update_progress(
        self,
        job_id: Any,
        percent: int,
        note: Optional[str] = None,
        external_handle: Optional[str] = None,
    ) -> None:
        self.updates.setdefault(job_id, []).append(JobUpdate(percent, note, external_handle))

    def last(self, job_id: Any) -> Optional[JobUpdate]:
        history = self.updates.get(job_id)
        return history[-1] if history else None


class ProgressReporter:
    """Forwards progress for one crawl; collaborator failures never escape."""

    def __init__(self, store: Optional[JobStore], job_id: Any = None) -> None:
        self.store = store
        self.job_id = job_id

    @property
    def active(self) -> bool:
        return self.store is not None and self.job_id is not None

    async def __call__(
        self,
        percent: float,
        note: Optional[str] = None,
        external_handle: Optional[str] = None,
    ) -> None:
        if not self.active:
            return
        value = max(0, min(100, int(round(percent))))
        try:
            result = self.store.update_progress(self.job_id, value, note, external_handle)
            if inspect.isawaitable(result):
                await result
            logger.debug("Job %s progress: %d%% - %s", self.job_id, value, note or "processing")
        except Exception as exc:
            logger.warning("Failed to update progress for job %s: %s", self.job_id, exc)
