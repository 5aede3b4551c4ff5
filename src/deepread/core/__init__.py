"""Core modules for transcript fetching."""

from .config import config, validate_config, setup_logging
from .errors import (
    TranscriptError,
    NotFoundError,
    TransientFetchError,
    StrategyUnavailableError,
    ExhaustedError,
    FetchCancelledError,
)
from .http_client import FetchContext, new_session, request_with_retry
from .relays import CaptionRelay, SupadataRelay, SubtitleApiRelay, CorsRelay, build_relays
from .strategies import (
    FetchStrategy,
    DirectStrategy,
    PaginatedStrategy,
    LibraryStrategy,
    ScrapeStrategy,
    ProxyStrategy,
    build_strategies,
)
from .trace import FetchEvent, LoggingObserver, RecordingObserver
from .transcript_fetcher import TranscriptFetcher

__all__ = [
    'config',
    'validate_config',
    'setup_logging',
    'TranscriptError',
    'NotFoundError',
    'TransientFetchError',
    'StrategyUnavailableError',
    'ExhaustedError',
    'FetchCancelledError',
    'FetchContext',
    'new_session',
    'request_with_retry',
    'CaptionRelay',
    'SupadataRelay',
    'SubtitleApiRelay',
    'CorsRelay',
    'build_relays',
    'FetchStrategy',
    'DirectStrategy',
    'PaginatedStrategy',
    'LibraryStrategy',
    'ScrapeStrategy',
    'ProxyStrategy',
    'build_strategies',
    'FetchEvent',
    'LoggingObserver',
    'RecordingObserver',
    'TranscriptFetcher',
]
