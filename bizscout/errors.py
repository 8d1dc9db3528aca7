"""Exception hierarchy shared by the crawl engine and its collaborators."""
from __future__ import annotations

__all__ = [
    "BizScoutError",
    "InvalidURLError",
    "RetrievalError",
    "RateLimitError",
    "JobPollingError",
    "JobFailedError",
    "JobTimeoutError",
    "EnrichmentError",
]


class BizScoutError(Exception):
    """Base class for all errors raised inside the package."""


class InvalidURLError(BizScoutError, ValueError):
    """The crawl target is not an absolute http(s) URL."""


class RetrievalError(BizScoutError):
    """A single retrieval strategy could not produce content."""


class RateLimitError(RetrievalError):
    """The managed crawl API rejected a request with HTTP 429."""


class JobPollingError(RetrievalError):
    """Base for asynchronous crawl job failures."""

    def __init__(self, message: str, handle: str | None = None) -> None:
        super().__init__(message)
        self.handle = handle


class JobFailedError(JobPollingError):
    """The managed API reported the job as failed or cancelled."""


class JobTimeoutError(JobPollingError):
    """The job never reached a terminal status within the attempt budget."""


class EnrichmentError(BizScoutError):
    """Model invocation failed or returned something that is not JSON."""
