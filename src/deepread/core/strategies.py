"""
Caption fetch strategies.

Each strategy is one way of getting captions for a video in one language. A
strategy returns raw segments or raises ``NotFoundError`` (nothing in that
language), ``TransientFetchError`` (network/service trouble) or
``StrategyUnavailableError`` (not configured). The driver in
``transcript_fetcher`` walks the table built by ``build_strategies``.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import requests
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeTranscriptApi,
)

from .config import Config, config
from .errors import NotFoundError, TransientFetchError
from .http_client import (
    TIMEDTEXT_URL,
    YOUTUBE,
    FetchContext,
    isolated_session,
    parse_json_body,
    request_with_retry,
    timedtext_params,
    watch_referer,
)
from .relays import CaptionRelay, build_relays, fetch_from_relays
from .trace import PAGE_FETCHED
from ..models import CaptionSegment, make_segment, segments_from_events
from ..utils.youtube_utils import normalize_lang


class FetchStrategy(ABC):
    """One named way of obtaining captions."""

    name: str = "strategy"

    @abstractmethod
    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        """Return segments for *video_id* in *language* ("" = provider default)."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


def _events_payload(data: Any) -> List[Dict[str, Any]]:
    if not isinstance(data, dict):
        raise TransientFetchError("Caption payload is not a JSON object", retryable=False)
    events = data.get("events")
    if events is None:
        return []
    if not isinstance(events, list):
        raise TransientFetchError("Caption payload events is not a list", retryable=False)
    return events


class DirectStrategy(FetchStrategy):
    """Single timedtext call."""

    name = "direct"

    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        response = request_with_retry(
            ctx, "GET", TIMEDTEXT_URL,
            params=timedtext_params(video_id, language),
            headers=watch_referer(video_id),
        )
        segments = segments_from_events(_events_payload(parse_json_body(response)))
        if not segments:
            raise NotFoundError("Timedtext returned no caption events")
        return segments


class PaginatedStrategy(FetchStrategy):
    """
    Timedtext fetched page by page from a moving time cursor.

    After each page the cursor moves just past the end of the page's last
    segment, and anything starting before the cursor on the next page is
    treated as overlap. Paging stops on an empty page, at ``max_pages``, or
    after a short page (fewer than ``min_page_segments``), which in practice
    means the end of the video.
    """

    name = "paginated"

    def __init__(self, max_pages: int = 50, min_page_segments: int = 10, epsilon: float = 0.01):
        self.max_pages = max_pages
        self.min_page_segments = min_page_segments
        self.epsilon = epsilon

    def next_cursor(self, last: CaptionSegment) -> float:
        return round(last.start + last.duration + self.epsilon, 3)

    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        collected: List[CaptionSegment] = []
        cursor = 0.0
        pages = 0

        while pages < self.max_pages:
            if pages:
                ctx.wait(ctx.page_delay)
            pages += 1
            try:
                response = request_with_retry(
                    ctx, "GET", TIMEDTEXT_URL,
                    params=timedtext_params(video_id, language, start=cursor),
                    headers=watch_referer(video_id),
                )
                events = _events_payload(parse_json_body(response))
            except NotFoundError:
                # A missing page after the first one just means we ran off the end
                if not collected:
                    raise
                break

            page = [seg for seg in segments_from_events(events) if seg.start >= cursor]
            ctx.emit(PAGE_FETCHED, page=pages, cursor=cursor, segments=len(page))
            if not page:
                break

            collected.extend(page)
            cursor = self.next_cursor(max(page, key=lambda seg: seg.start))
            if len(page) < self.min_page_segments:
                break

        if not collected:
            raise NotFoundError("Timedtext returned no caption events")
        return collected


class LibraryStrategy(FetchStrategy):
    """``youtube-transcript-api`` over a copy of the fetch session with the fetch timeout applied."""

    name = "library"

    def __init__(self, api_factory: Optional[Callable[[requests.Session], Any]] = None):
        self.api_factory = api_factory or (lambda session: YouTubeTranscriptApi(http_client=session))

    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        ctx.check_cancelled()
        try:
            with isolated_session(ctx) as session:
                api = self.api_factory(session)
                if language:
                    languages = [language]
                    base = normalize_lang(language)
                    if base and base != language:
                        languages.append(base)
                    fetched = api.fetch(video_id, languages=languages)
                else:
                    transcript = next(iter(api.list(video_id)), None)
                    if transcript is None:
                        raise NotFoundError("No transcripts listed for video")
                    fetched = transcript.fetch()
        except (NoTranscriptFound, TranscriptsDisabled, VideoUnavailable) as e:
            raise NotFoundError(f"youtube-transcript-api: {e.__class__.__name__}") from e
        except CouldNotRetrieveTranscript as e:
            raise TransientFetchError(f"youtube-transcript-api: {e.__class__.__name__}") from e
        except requests.RequestException as e:
            raise TransientFetchError(f"youtube-transcript-api request failed: {e}") from e

        segments = []
        for snippet in fetched:
            segment = make_segment(snippet.text, snippet.start, snippet.duration)
            if segment:
                segments.append(segment)
        if not segments:
            raise NotFoundError("youtube-transcript-api returned an empty transcript")
        return segments


def extract_caption_tracks(html: str) -> List[Dict[str, Any]]:
    """Pull the ``captionTracks`` list out of a watch page's player response."""
    marker = html.find('"captionTracks":')
    if marker < 0:
        return []
    start = html.find("[", marker)
    if start < 0:
        return []
    try:
        tracks, _ = json.JSONDecoder().raw_decode(html, start)
    except ValueError:
        return []
    return [t for t in tracks if isinstance(t, dict) and t.get("baseUrl")]


def _is_asr(track: Dict[str, Any]) -> bool:
    return track.get("kind") == "asr" or str(track.get("vssId", "")).startswith("a.")


def choose_track(tracks: List[Dict[str, Any]], language: str) -> Optional[Dict[str, Any]]:
    """
    Pick a caption track: manual before auto-generated, exact language code
    before base language. With no language, the first manual track (or the
    first track) wins.
    """
    if not tracks:
        return None
    if not language:
        manual = [t for t in tracks if not _is_asr(t)]
        return (manual or tracks)[0]

    wanted = language.lower()
    base = normalize_lang(language)
    for asr in (False, True):
        for matches in (
            lambda t: (t.get("languageCode") or "").lower() == wanted,
            lambda t: normalize_lang(t.get("languageCode")) == base,
        ):
            for track in tracks:
                if _is_asr(track) == asr and matches(track):
                    return track
    return None


class ScrapeStrategy(FetchStrategy):
    """Read the caption track list from the watch page HTML and fetch one track."""

    name = "scrape"

    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        response = request_with_retry(
            ctx, "GET", f"{YOUTUBE}/watch",
            params={"v": video_id, "hl": "en"},
            headers={"Accept": "text/html"},
        )
        tracks = extract_caption_tracks(response.text or "")
        if not tracks:
            raise NotFoundError("Watch page lists no caption tracks")

        track = choose_track(tracks, language)
        if track is None:
            raise NotFoundError(f"No caption track for language {language!r}")

        url = track["baseUrl"]
        if url.startswith("/"):
            url = YOUTUBE + url
        url = re.sub(r"([?&])fmt=[^&]*", r"\1fmt=json3", url) if "fmt=" in url else url + "&fmt=json3"

        ctx.wait(ctx.page_delay)
        response = request_with_retry(ctx, "GET", url, headers=watch_referer(video_id))
        segments = segments_from_events(_events_payload(parse_json_body(response)))
        if not segments:
            raise NotFoundError("Caption track is empty")
        return segments


class ProxyStrategy(FetchStrategy):
    """Third-party relays, in their configured priority order."""

    name = "proxy"

    def __init__(self, relays: List[CaptionRelay]):
        self.relays = list(relays)

    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        return fetch_from_relays(ctx, self.relays, video_id, language)


def _paginated(cfg: Config) -> FetchStrategy:
    return PaginatedStrategy(
        max_pages=cfg.fetch.max_pages,
        min_page_segments=cfg.fetch.min_page_segments,
        epsilon=cfg.fetch.cursor_epsilon,
    )


STRATEGY_REGISTRY: Dict[str, Callable[[Config], FetchStrategy]] = {
    "direct": lambda cfg: DirectStrategy(),
    "paginated": _paginated,
    "library": lambda cfg: LibraryStrategy(),
    "scrape": lambda cfg: ScrapeStrategy(),
    "proxy": lambda cfg: ProxyStrategy(build_relays(cfg.relays)),
}


def build_strategies(names: Optional[List[str]] = None, cfg: Optional[Config] = None) -> List[FetchStrategy]:
    """Build the ordered strategy table from strategy names."""
    cfg = cfg or config
    names = names if names is not None else cfg.fetch.strategies
    unknown = [name for name in names if name not in STRATEGY_REGISTRY]
    if unknown:
        raise ValueError(f"Unknown fetch strategies: {', '.join(unknown)}")
    return [STRATEGY_REGISTRY[name](cfg) for name in names]
