"""YouTube utility functions."""

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")

# Region variants collapse onto their base language
_LANG_ALIASES = {"zh-hans": "zh", "zh-hant": "zh", "pt-br": "pt", "pt-pt": "pt"}


def is_valid_video_id(video_id: Optional[str]) -> bool:
    """Check that *video_id* has the 11-character YouTube identifier shape."""
    return bool(video_id) and isinstance(video_id, str) and bool(VIDEO_ID_RE.match(video_id))


def validate_youtube_url(url: str) -> bool:
    """
    Validate if a URL is a valid YouTube URL.

    Args:
        url: The URL to validate

    Returns:
        True if valid YouTube URL, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    patterns = [
        r'^https?://(?:www\.)?youtube\.com/watch\?(?:.*&)?v=[\w-]+',
        r'^https?://(?:www\.)?youtu\.be/[\w-]+',
        r'^https?://(?:www\.)?youtube\.com/embed/[\w-]+',
        r'^https?://(?:www\.)?youtube\.com/shorts/[\w-]+',
        r'^https?://(?:www\.)?youtube\.com/live/[\w-]+',
        r'^https?://(?:www\.)?youtube\.com/v/[\w-]+',
        r'^https?://m\.youtube\.com/watch\?(?:.*&)?v=[\w-]+',
    ]

    return any(re.match(pattern, url.strip()) for pattern in patterns)


def extract_video_id(url: str, allow_bare_id: bool = False) -> Optional[str]:
    """
    Extract video ID from YouTube URL.

    Args:
        url: YouTube URL
        allow_bare_id: Also accept a bare 11-character video ID

    Returns:
        Video ID if found, None otherwise
    """
    if not url or not isinstance(url, str):
        return None
    candidate = url.strip()
    if allow_bare_id and is_valid_video_id(candidate):
        return candidate
    if not validate_youtube_url(candidate):
        return None

    parsed = urlparse(candidate)
    host = (parsed.netloc or "").lower()
    if host.endswith("youtu.be"):
        video_id = parsed.path.strip("/").split("/")[0]
    elif parsed.path == "/watch":
        video_id = (parse_qs(parsed.query).get("v") or [""])[0]
    else:
        # /embed/<id>, /shorts/<id>, /live/<id>, /v/<id>
        parts = [p for p in parsed.path.split("/") if p]
        video_id = parts[1] if len(parts) > 1 else ""

    return video_id if is_valid_video_id(video_id) else None


def normalize_youtube_url(url: str) -> Optional[str]:
    """
    Normalize YouTube URL to standard format.

    Args:
        url: YouTube URL

    Returns:
        Normalized URL if valid, None otherwise
    """
    video_id = extract_video_id(url)
    if not video_id:
        return None

    return f"https://www.youtube.com/watch?v={video_id}"


def normalize_lang(code: Optional[str]) -> Optional[str]:
    """Reduce a language code to its base language (``en-US`` -> ``en``)."""
    if not code:
        return None
    c = code.lower().strip()
    if c in _LANG_ALIASES:
        return _LANG_ALIASES[c]
    if "-" in c:
        c = c.split("-")[0]
    return c
