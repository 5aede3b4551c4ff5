"""Pytest configuration and fixtures for the DeepRead test suite."""

import os
import sys
from typing import List

import pytest

# Add the project root and src/ to path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
for path in (ROOT, os.path.join(ROOT, 'src')):
    if path not in sys.path:
        sys.path.insert(0, path)

# Set test environment variables before importing the package
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from deepread.core.config import Config
from deepread.core.http_client import FetchContext
from deepread.core.trace import RecordingObserver
from deepread.core.transcript_fetcher import TranscriptFetcher
from tests.mocks.mock_upstream import VIDEO_ID, FakeSession


@pytest.fixture
def test_config():
    """Configuration with no relays and fast, deterministic timings."""
    cfg = Config()
    cfg.network.request_timeout = 10.0
    cfg.network.max_retries = 2
    cfg.network.retry_backoff = 1.0
    cfg.network.page_delay = 0.15
    cfg.fetch.strategies = ['direct', 'paginated']
    cfg.fetch.default_languages = ['en']
    cfg.relays.supadata_api_key = ''
    cfg.relays.subtitle_api_url = ''
    cfg.relays.cors_relays = []
    return cfg


@pytest.fixture
def recorder():
    """Observer that keeps every trace event."""
    return RecordingObserver()


@pytest.fixture
def sleeps() -> List[float]:
    """Delays requested by the code under test, instead of real sleeping."""
    return []


@pytest.fixture
def make_context(recorder, sleeps):
    """Build a FetchContext around a FakeSession handler."""
    def factory(handler, **overrides):
        options = dict(
            session=FakeSession(handler),
            video_id=VIDEO_ID,
            observer=recorder,
            timeout=10.0,
            max_retries=2,
            retry_backoff=1.0,
            page_delay=0.15,
            sleep=sleeps.append,
        )
        options.update(overrides)
        return FetchContext(**options)
    return factory


@pytest.fixture
def make_fetcher(test_config, recorder, sleeps):
    """Build a TranscriptFetcher whose sessions route to *handler*."""
    def factory(handler=None, strategies=None):
        sessions = []

        def session_factory():
            session = FakeSession(handler or (lambda call: AssertionError("unexpected request")))
            sessions.append(session)
            return session

        fetcher = TranscriptFetcher(
            strategies=strategies,
            observer=recorder,
            session_factory=session_factory,
            sleep=sleeps.append,
            cfg=test_config,
        )
        fetcher.sessions = sessions
        return fetcher
    return factory
