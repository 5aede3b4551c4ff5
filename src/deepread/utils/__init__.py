"""Utility helpers for DeepRead."""

from .logging import get_logger, setup_logger
from .youtube_utils import (
    extract_video_id,
    is_valid_video_id,
    normalize_lang,
    normalize_youtube_url,
    validate_youtube_url,
)

__all__ = [
    'get_logger',
    'setup_logger',
    'extract_video_id',
    'is_valid_video_id',
    'normalize_lang',
    'normalize_youtube_url',
    'validate_youtube_url',
]
