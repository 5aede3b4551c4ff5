"""
Third-party caption relays.

Unofficial mirrors come and go, so every relay address lives here behind one
interface and the order they are tried in is configuration, not code. The
default priority list is:

1. ``supadata``      hosted transcript API, needs ``SUPADATA_API_KEY``
2. ``subtitle_api``  self-hosted extraction service at ``SUBTITLE_API_URL``
3. ``cors``          one entry per ``CAPTION_RELAY_URLS`` template, each
                     wrapping the timedtext URL (``{url}`` placeholder)

A relay that is not configured raises ``StrategyUnavailableError`` and is
skipped without counting as a failure.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .config import RelayConfig
from .errors import NotFoundError, StrategyUnavailableError, TransientFetchError
from .http_client import FetchContext, parse_json_body, request_with_retry, timedtext_url
from .trace import RELAY_FAILED, RELAY_NOT_FOUND, RELAY_SUCCEEDED
from ..models import CaptionSegment, make_segment, segments_from_events

# Plain-text transcripts get synthetic timings of this many milliseconds per sentence
SENTENCE_SPAN_MS = 3000


class CaptionRelay(ABC):
    """A third-party service that can hand back captions for a video."""

    name: str = "relay"

    @abstractmethod
    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        """Return segments or raise one of the transcript errors."""


class SupadataRelay(CaptionRelay):
    """Supadata transcript API; content offsets and durations are milliseconds."""

    name = "supadata"

    def __init__(self, api_key: str, api_url: str, timeout: float = 15.0):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout

    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        if not self.api_key:
            raise StrategyUnavailableError("SUPADATA_API_KEY is not set")

        params = {"url": f"https://www.youtube.com/watch?v={video_id}"}
        if language:
            params["lang"] = language
        response = request_with_retry(
            ctx, "GET", self.api_url, params=params,
            headers={"x-api-key": self.api_key, "Accept": "application/json"},
            timeout=self.timeout,
        )
        data = parse_json_body(response)
        if not isinstance(data, dict):
            raise TransientFetchError("Unexpected Supadata payload", retryable=False)
        return self._segments(data.get("content"))

    @staticmethod
    def _segments(content: Any) -> List[CaptionSegment]:
        if isinstance(content, list):
            segments = [
                make_segment(item.get("text"), item.get("offset"), item.get("duration"), scale=1000.0)
                for item in content if isinstance(item, dict)
            ]
        elif isinstance(content, str):
            sentences = [s for s in re.split(r"[.!?]+", content) if s.strip()]
            segments = [
                make_segment(text, index * SENTENCE_SPAN_MS, SENTENCE_SPAN_MS, scale=1000.0)
                for index, text in enumerate(sentences)
            ]
        else:
            segments = []

        segments = [seg for seg in segments if seg]
        if not segments:
            raise NotFoundError("Supadata returned no transcript content")
        return segments


class SubtitleApiRelay(CaptionRelay):
    """Self-hosted subtitle extraction service addressed by page URL."""

    name = "subtitle_api"

    def __init__(self, api_url: str, timeout: float = 15.0):
        self.api_url = api_url
        self.timeout = timeout

    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        if not self.api_url:
            raise StrategyUnavailableError("SUBTITLE_API_URL is not set")

        body: Dict[str, Any] = {"url": f"https://www.youtube.com/watch?v={video_id}"}
        if language:
            body["lang"] = language
        response = request_with_retry(
            ctx, "POST", self.api_url, json_body=body,
            headers={"Accept": "application/json"}, timeout=self.timeout,
        )
        data = parse_json_body(response)
        if not isinstance(data, dict):
            raise TransientFetchError("Unexpected subtitle service payload", retryable=False)
        if not data.get("success"):
            raise NotFoundError(data.get("error") or "Subtitle service reported no captions")

        segments = []
        for item in data.get("transcript") or []:
            if not isinstance(item, dict):
                continue
            start = item.get("start") or 0
            duration = item.get("duration")
            if duration is None and item.get("end") is not None:
                try:
                    duration = float(item["end"]) - float(start)
                except (TypeError, ValueError):
                    duration = 0
            segment = make_segment(item.get("text"), start, duration)
            if segment:
                segments.append(segment)
        if not segments:
            raise NotFoundError("Subtitle service returned an empty transcript")
        return segments


class CorsRelay(CaptionRelay):
    """Public CORS relay wrapping the timedtext endpoint."""

    def __init__(self, template: str):
        self.template = template
        self.name = f"cors:{template.split('/')[2] if '//' in template else template}"

    def fetch(self, ctx: FetchContext, video_id: str, language: str) -> List[CaptionSegment]:
        if "{url}" not in self.template:
            raise StrategyUnavailableError(f"Relay template has no {{url}} placeholder: {self.template}")

        url = self.template.replace("{url}", quote(timedtext_url(video_id, language), safe=""))
        response = request_with_retry(ctx, "GET", url, headers={"Accept": "application/json"})
        data = parse_json_body(response)
        events = data.get("events") if isinstance(data, dict) else None
        if events is not None and not isinstance(events, list):
            raise TransientFetchError(f"{self.name} returned malformed caption events", retryable=False)
        segments = segments_from_events(events or [])
        if not segments:
            raise NotFoundError(f"{self.name} returned no caption events")
        return segments


def build_relays(relay_config: RelayConfig) -> List[CaptionRelay]:
    """Build the relay priority list from configuration."""
    relays: List[CaptionRelay] = []
    for name in relay_config.order:
        if name == "supadata":
            relays.append(SupadataRelay(
                relay_config.supadata_api_key, relay_config.supadata_api_url, relay_config.supadata_timeout
            ))
        elif name == "subtitle_api":
            relays.append(SubtitleApiRelay(relay_config.subtitle_api_url, relay_config.subtitle_api_timeout))
        elif name == "cors":
            relays.extend(CorsRelay(template) for template in relay_config.cors_relays)
        else:
            raise ValueError(f"Unknown relay: {name}")
    return relays


def fetch_from_relays(ctx: FetchContext, relays: List[CaptionRelay], video_id: str,
                      language: str) -> List[CaptionSegment]:
    """
    Try each relay in order and return the first non-empty result.

    Raises ``StrategyUnavailableError`` when no relay is usable,
    ``NotFoundError`` when any usable relay reported no captions, and the last
    ``TransientFetchError`` otherwise.
    """
    not_found: Optional[NotFoundError] = None
    last_error: Optional[TransientFetchError] = None

    for relay in relays:
        try:
            segments = relay.fetch(ctx, video_id, language)
        except StrategyUnavailableError:
            continue
        except NotFoundError as e:
            ctx.emit(RELAY_NOT_FOUND, relay=relay.name, error=str(e))
            not_found = e
            continue
        except TransientFetchError as e:
            ctx.emit(RELAY_FAILED, relay=relay.name, error=str(e))
            last_error = e
            continue
        ctx.emit(RELAY_SUCCEEDED, relay=relay.name, segments=len(segments))
        return segments

    if not_found is not None:
        raise not_found
    if last_error is not None:
        raise last_error
    raise StrategyUnavailableError("No caption relay is configured")
