"""
Transcript fetch driver.

``TranscriptFetcher`` walks language hints in order and, for each hint, the
strategy table in priority order, stopping at the first strategy that yields
captions. Every failure is classified where it happens; the caller only ever
sees a normalized transcript or one of two failure kinds:

- ``no_captions``: nothing to show, surfaced as a quiet empty state
- ``fetch_error``: only transient upstream trouble was seen, worth a retry
"""

import asyncio
import threading
from typing import Callable, Iterable, List, Optional, Tuple

import requests

from .config import Config, config
from .errors import (
    ExhaustedError,
    NotFoundError,
    StrategyUnavailableError,
    TransientFetchError,
)
from .http_client import FetchContext, new_session
from .strategies import FetchStrategy, build_strategies
from .trace import (
    FETCH_EXHAUSTED,
    FETCH_STARTED,
    FETCH_SUCCEEDED,
    STRATEGY_FAILED,
    STRATEGY_NOT_FOUND,
    STRATEGY_SKIPPED,
    STRATEGY_STARTED,
    STRATEGY_SUCCEEDED,
    LoggingObserver,
    Observer,
)
from ..models import CaptionSegment, ErrorKind, TranscriptResult, normalize_segments
from ..utils.youtube_utils import is_valid_video_id


class TranscriptFetcher:
    """
    Fallback-chain transcript fetcher.

    The fetcher keeps no per-call state: each ``fetch`` builds its own session
    and context, so one instance can serve concurrent requests for different
    videos.
    """

    def __init__(
        self,
        strategies: Optional[List[FetchStrategy]] = None,
        observer: Optional[Observer] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        cfg: Optional[Config] = None,
    ):
        self.cfg = cfg or config
        self.strategies = list(strategies) if strategies is not None else build_strategies(cfg=self.cfg)
        self.observer = observer or LoggingObserver()
        self.session_factory = session_factory or (lambda: new_session(self.cfg.network.accept_language))
        self.sleep = sleep

    @property
    def strategy_names(self) -> List[str]:
        return [strategy.name for strategy in self.strategies]

    def fetch(
        self,
        video_id: str,
        language_hints: Optional[Iterable[str]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> TranscriptResult:
        """
        Fetch and normalize captions for *video_id*.

        Args:
            video_id: 11-character YouTube video ID (extract it from URLs first)
            language_hints: Preferred caption languages in order; "" lets the
                provider choose. None or empty means provider default only.
            cancel: Set this event to abandon the fetch; ``FetchCancelledError``
                is raised at the next call or wait.

        Returns:
            TranscriptResult with segments and metadata, or a classified failure

        Raises:
            ValueError: if *video_id* does not look like a YouTube video ID
            FetchCancelledError: if *cancel* was set
        """
        self._check_video_id(video_id)
        session = self.session_factory()
        try:
            return self._fetch_with(session, video_id, language_hints, cancel)
        finally:
            session.close()

    async def fetch_async(
        self,
        video_id: str,
        language_hints: Optional[Iterable[str]] = None,
    ) -> TranscriptResult:
        """
        Run ``fetch`` in a worker thread.

        Cancelling the awaiting task sets the cancel signal and closes the
        fetch session, so an in-flight call is torn down as well.
        """
        self._check_video_id(video_id)
        cancel = threading.Event()
        session = self.session_factory()
        try:
            return await asyncio.to_thread(self._fetch_with, session, video_id, language_hints, cancel)
        except asyncio.CancelledError:
            cancel.set()
            raise
        finally:
            session.close()

    @staticmethod
    def _check_video_id(video_id: str) -> None:
        if not is_valid_video_id(video_id):
            raise ValueError(f"Invalid YouTube video ID: {video_id!r}")

    def _fetch_with(
        self,
        session: requests.Session,
        video_id: str,
        language_hints: Optional[Iterable[str]],
        cancel: Optional[threading.Event],
    ) -> TranscriptResult:
        hints = self._hints(language_hints)
        ctx = FetchContext(
            session=session,
            video_id=video_id,
            observer=self.observer,
            timeout=self.cfg.network.request_timeout,
            max_retries=self.cfg.network.max_retries,
            retry_backoff=self.cfg.network.retry_backoff,
            page_delay=self.cfg.network.page_delay,
            sleep=self.sleep,
            cancel=cancel,
        )
        ctx.emit(FETCH_STARTED, hints=hints, strategies=self.strategy_names)

        try:
            segments, source, language = self._run_chain(ctx, video_id, hints)
        except ExhaustedError as e:
            ctx.strategy = ctx.language = None
            ctx.emit(FETCH_EXHAUSTED, kind=ErrorKind.NO_CAPTIONS.value)
            return TranscriptResult.failure(ErrorKind.NO_CAPTIONS, str(e))
        except TransientFetchError as e:
            ctx.strategy = ctx.language = None
            ctx.emit(FETCH_EXHAUSTED, kind=ErrorKind.FETCH_ERROR.value, error=str(e))
            return TranscriptResult.failure(ErrorKind.FETCH_ERROR, str(e))

        ctx.emit(FETCH_SUCCEEDED, source=source, segments=len(segments))
        return TranscriptResult.ok(segments, language=language or None, source=source)

    @staticmethod
    def _hints(language_hints: Optional[Iterable[str]]) -> List[str]:
        hints: List[str] = []
        for hint in language_hints or []:
            hint = (hint or "").strip()
            if hint not in hints:
                hints.append(hint)
        return hints or [""]

    def _run_chain(
        self, ctx: FetchContext, video_id: str, hints: List[str]
    ) -> Tuple[List[CaptionSegment], str, str]:
        saw_not_found = False
        last_error: Optional[TransientFetchError] = None

        for language in hints:
            for strategy in self.strategies:
                ctx.strategy, ctx.language = strategy.name, language
                ctx.check_cancelled()
                ctx.emit(STRATEGY_STARTED)
                try:
                    raw = strategy.fetch(ctx, video_id, language)
                except StrategyUnavailableError as e:
                    ctx.emit(STRATEGY_SKIPPED, reason=str(e))
                    continue
                except NotFoundError as e:
                    saw_not_found = True
                    ctx.emit(STRATEGY_NOT_FOUND, reason=str(e))
                    continue
                except TransientFetchError as e:
                    last_error = e
                    ctx.emit(STRATEGY_FAILED, error=str(e), status=e.status_code)
                    continue

                segments = normalize_segments(raw)
                if not segments:
                    saw_not_found = True
                    ctx.emit(STRATEGY_NOT_FOUND, reason="no usable segments")
                    continue
                ctx.emit(STRATEGY_SUCCEEDED, segments=len(segments))
                return segments, strategy.name, language

        if last_error is not None and not saw_not_found:
            raise last_error
        tried = ", ".join(h or "auto" for h in hints)
        raise ExhaustedError(f"No captions available for {video_id} (languages tried: {tried})")
