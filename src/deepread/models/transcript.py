"""Data models for caption segments and transcript fetch results."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


def clean_text(text: str) -> str:
    """Collapse whitespace and drop zero-width spaces."""
    text = (text or "").replace("\u200b", "")
    return re.sub(r"\s+", " ", text).strip()


def format_duration(seconds: float) -> str:
    """Format seconds as ``M:SS``, or ``H:MM:SS`` past one hour."""
    total = int(max(seconds, 0))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


@dataclass(frozen=True)
class CaptionSegment:
    """Represents a single caption segment with timing."""
    text: str
    start: float
    duration: float = 0.0

    @property
    def end(self) -> float:
        """Calculate end time."""
        return self.start + self.duration

    @property
    def timestamp(self) -> str:
        """Get formatted timestamp string."""
        return format_duration(self.start)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "start": self.start,
            "duration": self.duration,
            "end": round(self.end, 3),
            "timestamp": self.timestamp,
        }


def _to_seconds(value: Any, scale: float = 1.0) -> float:
    """Coerce an upstream timing field, treating absent or junk values as zero."""
    try:
        seconds = float(value) / scale
    except (TypeError, ValueError):
        return 0.0
    return seconds if seconds > 0 else 0.0


def make_segment(text: Any, start: Any, duration: Any, scale: float = 1.0) -> Optional[CaptionSegment]:
    """Build a segment from loosely typed upstream fields, or None when the text is empty."""
    cleaned = clean_text(text if isinstance(text, str) else "")
    if not cleaned:
        return None
    return CaptionSegment(
        text=cleaned,
        start=_to_seconds(start, scale),
        duration=_to_seconds(duration, scale),
    )


def segments_from_events(events: Iterable[Dict[str, Any]]) -> List[CaptionSegment]:
    """
    Convert timedtext json3 events into caption segments.

    Each event carries ``tStartMs``, ``dDurationMs`` and a list of ``segs``
    whose ``utf8`` pieces form the text. Missing timings become zero; events
    without text (window/style events) are skipped.
    """
    segments = []
    if not isinstance(events, (list, tuple)):
        return segments
    for event in events:
        if not isinstance(event, dict):
            continue
        pieces = event.get("segs")
        if not isinstance(pieces, list):
            continue
        text = "".join(
            seg["utf8"] for seg in pieces
            if isinstance(seg, dict) and isinstance(seg.get("utf8"), str)
        )
        segment = make_segment(text, event.get("tStartMs"), event.get("dDurationMs"), scale=1000.0)
        if segment:
            segments.append(segment)
    return segments


def normalize_segments(segments: Iterable[CaptionSegment]) -> List[CaptionSegment]:
    """
    Return segments sorted by start time with empty texts and repeated
    ``(start, text)`` pairs removed. Sorting is stable, so segments sharing a
    start keep their upstream order.
    """
    seen = set()
    ordered = []
    for segment in sorted(segments, key=lambda s: s.start):
        text = clean_text(segment.text)
        if not text:
            continue
        key = (segment.start, text)
        if key in seen:
            continue
        seen.add(key)
        if text != segment.text or segment.duration < 0 or segment.start < 0:
            segment = CaptionSegment(text=text, start=max(segment.start, 0.0), duration=max(segment.duration, 0.0))
        ordered.append(segment)
    return ordered


class ErrorKind(Enum):
    """How a failed fetch should be surfaced."""
    NO_CAPTIONS = "no_captions"
    FETCH_ERROR = "fetch_error"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.FETCH_ERROR


@dataclass
class TranscriptMetadata:
    """Summary figures derived from a transcript."""
    word_count: int
    segment_count: int
    total_duration: float
    language: Optional[str] = None
    source: Optional[str] = None

    @property
    def duration_formatted(self) -> str:
        return format_duration(self.total_duration)

    @classmethod
    def from_segments(cls, segments: List[CaptionSegment], language: Optional[str] = None,
                      source: Optional[str] = None) -> "TranscriptMetadata":
        last = segments[-1] if segments else None
        return cls(
            word_count=sum(len(seg.text.split()) for seg in segments),
            segment_count=len(segments),
            total_duration=round(last.end, 3) if last else 0.0,
            language=language,
            source=source,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word_count": self.word_count,
            "segment_count": self.segment_count,
            "total_duration": self.total_duration,
            "duration_formatted": self.duration_formatted,
            "language": self.language,
            "source": self.source,
        }


@dataclass
class TranscriptResult:
    """Result of a transcript fetch: a normalized transcript or a classified failure."""
    success: bool
    segments: List[CaptionSegment] = field(default_factory=list)
    metadata: Optional[TranscriptMetadata] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, segments: List[CaptionSegment], language: Optional[str] = None,
           source: Optional[str] = None) -> "TranscriptResult":
        return cls(
            success=True,
            segments=list(segments),
            metadata=TranscriptMetadata.from_segments(segments, language=language, source=source),
        )

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str) -> "TranscriptResult":
        return cls(success=False, error_kind=error_kind, message=message)

    @property
    def text(self) -> str:
        """Plain transcript text."""
        return " ".join(seg.text for seg in self.segments)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        if self.success:
            return {
                "success": True,
                "segments": [seg.to_dict() for seg in self.segments],
                "metadata": self.metadata.to_dict() if self.metadata else None,
            }
        return {
            "success": False,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message,
        }
