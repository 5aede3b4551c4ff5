from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class PullRequest(BaseModel):
    url: str
    languages: Optional[List[str]] = Field(default=None)


class SegmentModel(BaseModel):
    text: str
    start: float = Field(ge=0.0)
    duration: float = Field(ge=0.0)
    end: float
    timestamp: str


class MetaModel(BaseModel):
    word_count: int
    segment_count: int
    total_duration: float
    duration_formatted: str
    language: Optional[str] = None
    source: Optional[str] = None


class PullResponse(BaseModel):
    success: bool = True
    video_id: str
    transcript: List[SegmentModel]
    meta: MetaModel


class ErrorResponse(BaseModel):
    success: bool = False
    error_kind: str
    error: str
    retryable: bool = False
    suggestion: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
