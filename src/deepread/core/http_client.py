"""
Outbound HTTP plumbing shared by every fetch strategy.

Provides the browser-like ``requests`` session, the per-fetch context that
carries retry policy, delays, cancellation and the trace observer, and the
single request helper that classifies responses into the error taxonomy.
"""

import json
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from .errors import FetchCancelledError, NotFoundError, TransientFetchError
from .trace import REQUEST_RETRY, FetchEvent, Observer

YOUTUBE = "https://www.youtube.com"
TIMEDTEXT_URL = f"{YOUTUBE}/api/timedtext"
UA_POOL = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_3_1) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124 Safari/537.36",
]
XSSI_PREFIX = ")]}'"


def _mount_adapters(s: requests.Session) -> None:
    # Only connection setup is repeated here; status retries follow the fetch policy
    retries = Retry(total=1, connect=1, read=0, status=0, redirect=5, raise_on_status=False)
    s.mount("https://", HTTPAdapter(max_retries=retries))
    s.mount("http://", HTTPAdapter(max_retries=retries))


def new_session(accept_language: str = "en-US,en;q=0.9") -> requests.Session:
    s = requests.Session()
    _mount_adapters(s)
    s.headers.update({
        "User-Agent": random.choice(UA_POOL),
        "Accept": "*/*",
        "Accept-Language": accept_language,
        "Origin": YOUTUBE, "Referer": f"{YOUTUBE}/", "Connection": "keep-alive",
    })
    s.cookies.set("CONSENT", "YES+1", domain=".youtube.com")
    s.cookies.set("PREF", "hl=en", domain=".youtube.com")
    return s


def timedtext_params(video_id: str, language: str = "", start: Optional[float] = None) -> Dict[str, str]:
    params = {"v": video_id}
    if language:
        params["lang"] = language
    params["fmt"] = "json3"
    if start:
        params["start"] = f"{start:.3f}".rstrip("0").rstrip(".")
    return params


def timedtext_url(video_id: str, language: str = "", start: Optional[float] = None) -> str:
    return f"{TIMEDTEXT_URL}?{urlencode(timedtext_params(video_id, language, start))}"


def watch_referer(video_id: str) -> Dict[str, str]:
    return {"Referer": f"{YOUTUBE}/watch?v={video_id}", "Accept": "application/json"}


@dataclass
class FetchContext:
    """Everything one strategy attempt needs besides the video id and language."""
    session: requests.Session
    video_id: str
    observer: Observer
    timeout: float = 15.0
    max_retries: int = 2
    retry_backoff: float = 1.0
    page_delay: float = 0.15
    sleep: Optional[Callable[[float], None]] = None
    cancel: Optional[threading.Event] = None
    strategy: Optional[str] = None
    language: Optional[str] = None

    def check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise FetchCancelledError(f"Fetch for {self.video_id} cancelled")

    def wait(self, seconds: float) -> None:
        """Sleep for *seconds*, waking early if the fetch is cancelled."""
        if seconds <= 0:
            self.check_cancelled()
            return
        if self.sleep is not None:
            self.sleep(seconds)
        elif self.cancel is not None:
            self.cancel.wait(seconds)
        else:
            time.sleep(seconds)
        self.check_cancelled()

    def emit(self, name: str, **detail: Any) -> None:
        self.observer(FetchEvent(
            name=name,
            video_id=self.video_id,
            strategy=self.strategy,
            language=self.language,
            detail=detail,
        ))


def request_with_retry(
    ctx: FetchContext,
    method: str,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    json_body: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
) -> requests.Response:
    """
    Perform one outbound call under the context's retry policy.

    Returns the response for any 2xx status. HTTP 404 raises ``NotFoundError``
    immediately. Timeouts, connection errors and every other status are retried
    ``ctx.max_retries`` times with linear backoff and then raised as
    ``TransientFetchError``.
    """
    timeout = timeout or ctx.timeout
    attempts = max(ctx.max_retries, 0) + 1
    last_error = None

    for attempt in range(1, attempts + 1):
        ctx.check_cancelled()
        try:
            response = ctx.session.request(
                method, url, params=params, headers=headers, json=json_body, timeout=timeout
            )
        except requests.Timeout:
            last_error = TransientFetchError(f"Timed out after {timeout:g}s calling {url}")
        except requests.RequestException as e:
            last_error = TransientFetchError(f"Request to {url} failed: {e}")
        else:
            if response.status_code == 404:
                raise NotFoundError(f"HTTP 404 from {url}")
            if 200 <= response.status_code < 300:
                return response
            last_error = TransientFetchError(
                f"HTTP {response.status_code} from {url}", status_code=response.status_code
            )

        if attempt < attempts:
            delay = ctx.retry_backoff * attempt
            ctx.emit(REQUEST_RETRY, attempt=attempt, delay=delay, error=str(last_error))
            ctx.wait(delay)

    raise last_error


def parse_json_body(response: requests.Response) -> Any:
    """
    Decode a JSON body, tolerating the ``)]}'`` guard some endpoints prepend.

    An empty body means the upstream has nothing for this request and raises
    ``NotFoundError``; anything that is not JSON raises a non-retryable
    ``TransientFetchError``.
    """
    text = (response.text or "").strip()
    if text.startswith(XSSI_PREFIX):
        text = text[len(XSSI_PREFIX):].lstrip()
    if not text:
        raise NotFoundError("Empty response body")
    try:
        return json.loads(text)
    except ValueError as e:
        raise TransientFetchError(f"Malformed JSON body: {e}", retryable=False)


class TimeoutSession(requests.Session):
    """Session that applies a default timeout to calls made without one."""

    def __init__(self, timeout: float):
        super().__init__()
        self.timeout = timeout

    def request(self, method, url, **kwargs):
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().request(method, url, **kwargs)


def isolated_session(ctx: FetchContext) -> TimeoutSession:
    """
    Copy the fetch session's headers and cookies into a separate session.

    For third-party clients that issue their own calls without a timeout and
    edit session headers in place.
    """
    s = TimeoutSession(ctx.timeout)
    _mount_adapters(s)
    s.headers.update(ctx.session.headers)
    s.cookies.update(ctx.session.cookies)
    return s
