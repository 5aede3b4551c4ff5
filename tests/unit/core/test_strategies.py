"""Unit tests for the individual fetch strategies."""

import json
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
import requests
from youtube_transcript_api import NoTranscriptFound, TranscriptsDisabled

from deepread.core.errors import NotFoundError, TransientFetchError
from deepread.core.strategies import (
    DirectStrategy,
    LibraryStrategy,
    PaginatedStrategy,
    ProxyStrategy,
    ScrapeStrategy,
    build_strategies,
    choose_track,
    extract_caption_tracks,
)
from deepread.core.trace import PAGE_FETCHED
from deepread.models import CaptionSegment
from tests.mocks.mock_upstream import (
    VIDEO_ID,
    FakeResponse,
    PagedUpstream,
    events_payload,
    numbered_segments,
    timedtext_handler,
)


class TestDirectStrategy:
    """Single-shot timedtext call."""

    def test_returns_segments_for_language(self, make_context):
        ctx = make_context(timedtext_handler({"en": [(0.0, 1.5, "hello"), (1.5, 2.0, "there")]}))

        segments = DirectStrategy().fetch(ctx, VIDEO_ID, "en")

        assert segments == [CaptionSegment("hello", 0.0, 1.5), CaptionSegment("there", 1.5, 2.0)]
        assert ctx.session.calls[0].query == {"v": VIDEO_ID, "lang": "en", "fmt": "json3"}

    def test_provider_default_omits_lang(self, make_context):
        ctx = make_context(timedtext_handler({"": [(0.0, 1.0, "default track")]}))

        segments = DirectStrategy().fetch(ctx, VIDEO_ID, "")

        assert segments[0].text == "default track"
        assert "lang" not in ctx.session.calls[0].query

    def test_404_is_not_found(self, make_context):
        ctx = make_context(timedtext_handler({}))

        with pytest.raises(NotFoundError):
            DirectStrategy().fetch(ctx, VIDEO_ID, "fr")

    def test_zero_events_is_not_found(self, make_context):
        ctx = make_context(timedtext_handler({"en": []}))

        with pytest.raises(NotFoundError):
            DirectStrategy().fetch(ctx, VIDEO_ID, "en")

    def test_non_object_payload_is_malformed(self, make_context):
        ctx = make_context(timedtext_handler({"en": FakeResponse(200, "[1, 2]")}))

        with pytest.raises(TransientFetchError) as excinfo:
            DirectStrategy().fetch(ctx, VIDEO_ID, "en")

        assert excinfo.value.retryable is False

    def test_non_list_events_are_malformed(self, make_context):
        ctx = make_context(timedtext_handler({"en": FakeResponse(200, json_data={"events": 5})}))

        with pytest.raises(TransientFetchError) as excinfo:
            DirectStrategy().fetch(ctx, VIDEO_ID, "en")

        assert excinfo.value.retryable is False


class TestPaginatedStrategy:
    """Cursor-driven paging."""

    def test_cursor_advances_past_last_segment_end(self, make_context):
        first = numbered_segments(5, start=0.0, step=2.0)[:-1] + [(10.0, 2.0, "last of page one")]
        upstream = PagedUpstream([first, [(12.5, 1.0, "page two")]])
        ctx = make_context(upstream)

        segments = PaginatedStrategy(min_page_segments=1).fetch(ctx, VIDEO_ID, "en")

        assert upstream.cursors[0] == 0.0
        assert 12.01 <= upstream.cursors[1] < 12.1
        assert segments[-1].text == "page two"

    def test_first_request_has_no_start_parameter(self, make_context):
        upstream = PagedUpstream([[(0.0, 1.0, "only")]])
        ctx = make_context(upstream)

        PaginatedStrategy().fetch(ctx, VIDEO_ID, "en")

        assert "start" not in ctx.session.calls[0].query

    def test_overlap_on_next_page_is_excluded(self, make_context):
        page_one = numbered_segments(10, start=0.0, step=2.0)      # ends at 20.0
        page_two = [(18.0, 2.0, "line 9"), (20.5, 2.0, "fresh")]   # repeats the tail
        ctx = make_context(PagedUpstream([page_one, page_two]))

        segments = PaginatedStrategy(min_page_segments=10).fetch(ctx, VIDEO_ID, "en")

        texts = [s.text for s in segments]
        assert texts.count("line 9") == 1
        assert texts[-1] == "fresh"
        assert len(segments) == 11

    def test_stops_on_short_page(self, make_context):
        upstream = PagedUpstream([numbered_segments(3), numbered_segments(3, start=100.0)])
        ctx = make_context(upstream)

        segments = PaginatedStrategy(min_page_segments=10).fetch(ctx, VIDEO_ID, "en")

        assert len(upstream.cursors) == 1
        assert len(segments) == 3

    def test_stops_on_empty_page(self, make_context, recorder):
        upstream = PagedUpstream([numbered_segments(10), []])
        ctx = make_context(upstream)

        segments = PaginatedStrategy(min_page_segments=10).fetch(ctx, VIDEO_ID, "en")

        assert len(upstream.cursors) == 2
        assert len(segments) == 10
        assert [e.detail["segments"] for e in recorder.of(PAGE_FETCHED)] == [10, 0]

    def test_stops_at_page_cap(self, make_context):
        pages = [numbered_segments(10, start=i * 30.0) for i in range(5)]
        upstream = PagedUpstream(pages)
        ctx = make_context(upstream)

        segments = PaginatedStrategy(max_pages=3, min_page_segments=10).fetch(ctx, VIDEO_ID, "en")

        assert len(upstream.cursors) == 3
        assert len(segments) == 30

    def test_politeness_delay_between_pages(self, make_context, sleeps):
        pages = [numbered_segments(10), numbered_segments(10, start=30.0), []]
        ctx = make_context(PagedUpstream(pages))

        PaginatedStrategy(min_page_segments=10).fetch(ctx, VIDEO_ID, "en")

        assert sleeps == [0.15, 0.15]

    def test_not_found_after_first_page_ends_paging(self, make_context):
        upstream = PagedUpstream([numbered_segments(10), FakeResponse(404)])
        ctx = make_context(upstream)

        segments = PaginatedStrategy(min_page_segments=10).fetch(ctx, VIDEO_ID, "en")

        assert len(segments) == 10

    def test_empty_first_page_is_not_found(self, make_context):
        ctx = make_context(PagedUpstream([[]]))

        with pytest.raises(NotFoundError):
            PaginatedStrategy().fetch(ctx, VIDEO_ID, "en")

    def test_malformed_page_abandons_strategy_without_retry(self, make_context, sleeps):
        upstream = PagedUpstream([numbered_segments(10), FakeResponse(200, "not json")])
        ctx = make_context(upstream)

        with pytest.raises(TransientFetchError) as excinfo:
            PaginatedStrategy(min_page_segments=10).fetch(ctx, VIDEO_ID, "en")

        assert excinfo.value.retryable is False
        assert len(upstream.cursors) == 2
        # only the politeness delay, no retry backoff
        assert sleeps == [0.15]


class TestLibraryStrategy:
    """youtube-transcript-api wrapper."""

    @staticmethod
    def snippets(*items):
        return [SimpleNamespace(text=text, start=start, duration=duration) for text, start, duration in items]

    def test_fetches_with_language_and_base_language(self, make_context):
        api = Mock()
        api.fetch.return_value = self.snippets(("hi", 0.0, 1.0), ("  ", 1.0, 1.0))
        ctx = make_context(lambda call: FakeResponse(500))

        segments = LibraryStrategy(api_factory=lambda session: api).fetch(ctx, VIDEO_ID, "en-US")

        api.fetch.assert_called_once_with(VIDEO_ID, languages=["en-US", "en"])
        assert segments == [CaptionSegment("hi", 0.0, 1.0)]

    def test_provider_default_uses_first_listed_transcript(self, make_context):
        transcript = Mock()
        transcript.fetch.return_value = self.snippets(("hola", 2.0, 1.0))
        api = Mock()
        api.list.return_value = [transcript]
        ctx = make_context(lambda call: FakeResponse(500))

        segments = LibraryStrategy(api_factory=lambda session: api).fetch(ctx, VIDEO_ID, "")

        assert segments[0].text == "hola"
        api.fetch.assert_not_called()

    def test_library_calls_carry_fetch_timeout(self, make_context):
        ctx = make_context(lambda call: FakeResponse(500), timeout=12.5)

        def factory(session):
            api = Mock()

            def fetch(video_id, languages):
                session.get("https://www.youtube.com/watch", params={"v": video_id})
                return self.snippets(("x", 0.0, 1.0))
            api.fetch.side_effect = fetch
            return api

        with patch.object(requests.Session, "request") as base_request:
            LibraryStrategy(api_factory=factory).fetch(ctx, VIDEO_ID, "en")

        assert base_request.call_args.kwargs["timeout"] == 12.5

    def test_library_gets_isolated_session(self, make_context):
        seen = {}
        api = Mock()
        api.fetch.return_value = self.snippets(("x", 0.0, 1.0))
        ctx = make_context(lambda call: FakeResponse(500))
        ctx.session.cookies.set("CONSENT", "YES+1", domain=".youtube.com")

        def factory(session):
            seen["session"] = session
            seen["language"] = session.headers["Accept-Language"]
            seen["consent"] = session.cookies.get("CONSENT", domain=".youtube.com")
            session.headers.update({"Accept-Language": "en-US"})
            return api

        LibraryStrategy(api_factory=factory).fetch(ctx, VIDEO_ID, "en")

        assert seen["session"] is not ctx.session
        assert seen["session"].timeout == ctx.timeout
        assert seen["language"] == "de-DE,de;q=0.9"
        assert seen["consent"] == "YES+1"
        assert ctx.session.headers["Accept-Language"] == "de-DE,de;q=0.9"

    @pytest.mark.parametrize("error", [
        NoTranscriptFound(VIDEO_ID, ["en"], None),
        TranscriptsDisabled(VIDEO_ID),
    ])
    def test_library_not_found_errors(self, make_context, error):
        api = Mock()
        api.fetch.side_effect = error
        ctx = make_context(lambda call: FakeResponse(500))

        with pytest.raises(NotFoundError):
            LibraryStrategy(api_factory=lambda session: api).fetch(ctx, VIDEO_ID, "en")

    def test_network_errors_are_transient(self, make_context):
        api = Mock()
        api.fetch.side_effect = requests.ConnectionError("down")
        ctx = make_context(lambda call: FakeResponse(500))

        with pytest.raises(TransientFetchError):
            LibraryStrategy(api_factory=lambda session: api).fetch(ctx, VIDEO_ID, "en")


WATCH_HTML = """<html><script>var ytInitialPlayerResponse = {"captions":{"playerCaptionsTracklistRenderer":
{"captionTracks":%s,"audioTracks":[]}}};</script></html>"""

TRACKS = [
    {"baseUrl": "https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ&lang=en&kind=asr&fmt=srv3",
     "languageCode": "en", "kind": "asr", "vssId": "a.en"},
    {"baseUrl": "https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ&lang=en-US",
     "languageCode": "en-US", "vssId": ".en-US"},
    {"baseUrl": "/api/timedtext?v=dQw4w9WgXcQ&lang=de", "languageCode": "de", "vssId": ".de"},
]


class TestScrapeHelpers:
    """Caption track extraction and selection."""

    def test_extract_caption_tracks(self):
        tracks = extract_caption_tracks(WATCH_HTML % json.dumps(TRACKS))

        assert [t["languageCode"] for t in tracks] == ["en", "en-US", "de"]

    @pytest.mark.parametrize("html", ["<html></html>", '"captionTracks": [ {broken'])
    def test_extract_without_tracks(self, html):
        assert extract_caption_tracks(html) == []

    @pytest.mark.parametrize("language,expected", [
        ("en-US", "en-US"),    # exact code
        ("en", "en-US"),       # manual beats auto-generated on the base language
        ("de", "de"),
        ("", "en-US"),         # first manual track
        ("fr", None),
    ])
    def test_choose_track(self, language, expected):
        track = choose_track(TRACKS, language)

        assert (track or {}).get("languageCode") == expected


class TestScrapeStrategy:
    """Watch page scrape end to end."""

    def test_fetches_chosen_track_as_json3(self, make_context):
        def handler(call):
            if call.url.endswith("/watch"):
                return FakeResponse(200, WATCH_HTML % json.dumps(TRACKS))
            return FakeResponse(200, json_data=events_payload([(0.0, 1.0, "guten tag")]))
        ctx = make_context(handler)

        segments = ScrapeStrategy().fetch(ctx, VIDEO_ID, "de")

        assert segments[0].text == "guten tag"
        track_call = ctx.session.calls[1]
        assert track_call.url.startswith("https://www.youtube.com/api/timedtext")
        assert track_call.query["fmt"] == "json3"

    def test_replaces_existing_format(self, make_context):
        def handler(call):
            if call.url.endswith("/watch"):
                return FakeResponse(200, WATCH_HTML % json.dumps(TRACKS[:1]))
            return FakeResponse(200, json_data=events_payload([(0.0, 1.0, "auto")]))
        ctx = make_context(handler)

        ScrapeStrategy().fetch(ctx, VIDEO_ID, "en")

        assert "fmt=json3" in ctx.session.calls[1].url
        assert "srv3" not in ctx.session.calls[1].url

    def test_page_without_tracks_is_not_found(self, make_context):
        ctx = make_context(lambda call: FakeResponse(200, "<html>no captions</html>"))

        with pytest.raises(NotFoundError):
            ScrapeStrategy().fetch(ctx, VIDEO_ID, "en")

    def test_missing_language_is_not_found(self, make_context):
        ctx = make_context(lambda call: FakeResponse(200, WATCH_HTML % json.dumps(TRACKS)))

        with pytest.raises(NotFoundError):
            ScrapeStrategy().fetch(ctx, VIDEO_ID, "ja")


class TestBuildStrategies:
    """Strategy table construction."""

    def test_builds_in_requested_order(self, test_config):
        strategies = build_strategies(["scrape", "direct", "proxy"], cfg=test_config)

        assert [s.name for s in strategies] == ["scrape", "direct", "proxy"]
        assert isinstance(strategies[2], ProxyStrategy)

    def test_defaults_to_configured_order(self, test_config):
        assert [s.name for s in build_strategies(cfg=test_config)] == ["direct", "paginated"]

    def test_paginated_uses_configured_limits(self, test_config):
        test_config.fetch.max_pages = 7
        test_config.fetch.min_page_segments = 4

        strategy = build_strategies(["paginated"], cfg=test_config)[0]

        assert (strategy.max_pages, strategy.min_page_segments, strategy.epsilon) == (7, 4, 0.01)

    def test_unknown_name_raises(self, test_config):
        with pytest.raises(ValueError, match="nope"):
            build_strategies(["direct", "nope"], cfg=test_config)
