"""Trace events emitted by the fetch chain and the observers that receive them."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..utils.logging import get_logger

FETCH_STARTED = "fetch_started"
STRATEGY_STARTED = "strategy_started"
STRATEGY_SUCCEEDED = "strategy_succeeded"
STRATEGY_NOT_FOUND = "strategy_not_found"
STRATEGY_FAILED = "strategy_failed"
STRATEGY_SKIPPED = "strategy_skipped"
PAGE_FETCHED = "page_fetched"
REQUEST_RETRY = "request_retry"
FETCH_SUCCEEDED = "fetch_succeeded"
FETCH_EXHAUSTED = "fetch_exhausted"
RELAY_SUCCEEDED = "relay_succeeded"
RELAY_NOT_FOUND = "relay_not_found"
RELAY_FAILED = "relay_failed"


@dataclass
class FetchEvent:
    """One step of a fetch, as seen by an observer."""
    name: str
    video_id: str
    strategy: Optional[str] = None
    language: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        parts = [self.name, f"video={self.video_id}"]
        if self.strategy:
            parts.append(f"strategy={self.strategy}")
        if self.language is not None:
            parts.append(f"lang={self.language or 'auto'}")
        parts.extend(f"{key}={value}" for key, value in self.detail.items())
        return " ".join(parts)


Observer = Callable[[FetchEvent], None]

_LEVELS = {
    STRATEGY_FAILED: logging.WARNING,
    FETCH_EXHAUSTED: logging.WARNING,
    FETCH_SUCCEEDED: logging.INFO,
    STRATEGY_SUCCEEDED: logging.INFO,
    RELAY_FAILED: logging.WARNING,
}


class LoggingObserver:
    """Default observer: writes every event through the package logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("transcript_fetcher")

    def __call__(self, event: FetchEvent) -> None:
        self.logger.log(_LEVELS.get(event.name, logging.DEBUG), event.describe())


class RecordingObserver:
    """Keeps events in memory; handy for inspecting a single fetch."""

    def __init__(self):
        self.events: List[FetchEvent] = []

    def __call__(self, event: FetchEvent) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [event.name for event in self.events]

    def of(self, name: str) -> List[FetchEvent]:
        return [event for event in self.events if event.name == name]

