"""
DeepRead

Pulls YouTube captions through an ordered chain of fetch strategies and
returns them as a normalized, timed transcript.
"""

__version__ = "0.1.0"

from .utils.logging import get_logger
from .core import TranscriptFetcher, config
from .models import CaptionSegment, ErrorKind, TranscriptMetadata, TranscriptResult
from .utils.youtube_utils import extract_video_id, validate_youtube_url

__all__ = [
    'get_logger',
    'TranscriptFetcher',
    'config',
    'CaptionSegment',
    'ErrorKind',
    'TranscriptMetadata',
    'TranscriptResult',
    'extract_video_id',
    'validate_youtube_url',
]
