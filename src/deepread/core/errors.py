"""Error taxonomy for the transcript fetch chain."""

from typing import Optional


class TranscriptError(Exception):
    """Base class for transcript-related errors."""
    pass


class NotFoundError(TranscriptError):
    """Upstream has no captions for the requested language."""
    pass


class TransientFetchError(TranscriptError):
    """Timeout, connection failure, unexpected status or malformed body."""

    def __init__(self, message: str, status_code: Optional[int] = None, retryable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class StrategyUnavailableError(TranscriptError):
    """A strategy or relay is not configured and was skipped."""
    pass


class ExhaustedError(TranscriptError):
    """Every language hint and strategy failed without producing captions."""
    pass


class FetchCancelledError(TranscriptError):
    """The caller cancelled the fetch."""
    pass
