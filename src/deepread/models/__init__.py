"""Data models for DeepRead."""

from .transcript import (
    CaptionSegment,
    ErrorKind,
    TranscriptMetadata,
    TranscriptResult,
    clean_text,
    make_segment,
    normalize_segments,
    segments_from_events,
)

__all__ = [
    "CaptionSegment",
    "ErrorKind",
    "TranscriptMetadata",
    "TranscriptResult",
    "clean_text",
    "make_segment",
    "normalize_segments",
    "segments_from_events",
]
