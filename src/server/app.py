from __future__ import annotations

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deepread.core import TranscriptFetcher, config, setup_logging, validate_config
from deepread.models import ErrorKind, TranscriptResult
from deepread.utils.logging import get_logger
from deepread.utils.youtube_utils import extract_video_id, is_valid_video_id
from .schemas import ErrorResponse, PullRequest, PullResponse

logger = get_logger("server")


# ----------------------------------------------------------------------------
# FastAPI lifecycle
# ----------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    is_valid, problems = validate_config()
    for problem in problems:
        logger.warning(f"Configuration problem: {problem}")
    if not is_valid:
        raise RuntimeError("Invalid configuration: " + "; ".join(problems))
    app.state.fetcher = TranscriptFetcher()
    logger.info(f"Transcript fetcher ready with strategies: {', '.join(app.state.fetcher.strategy_names)}")
    yield


app = FastAPI(title="DeepRead", version=config.app.version, lifespan=lifespan)

# Optional CORS (configure via env if needed)
if config.server.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------

def get_fetcher(request: Request) -> TranscriptFetcher:
    fetcher = getattr(request.app.state, "fetcher", None)
    if fetcher is None:
        fetcher = request.app.state.fetcher = TranscriptFetcher()
    return fetcher


def _language_hints(languages: Optional[List[str]]) -> List[str]:
    if languages:
        return languages
    # Configured preferences first, then whatever the provider picks
    return list(config.fetch.default_languages) + [""]


def _result_response(video_id: str, result: TranscriptResult) -> JSONResponse:
    if result.success:
        payload = PullResponse(
            video_id=video_id,
            transcript=[seg.to_dict() for seg in result.segments],
            meta=result.metadata.to_dict(),
        )
        return JSONResponse(status_code=200, content=payload.model_dump())

    if result.error_kind is ErrorKind.NO_CAPTIONS:
        error = ErrorResponse(
            error_kind=result.error_kind.value,
            error=result.message or "No captions available",
            suggestion="manual_upload",
        )
        return JSONResponse(status_code=404, content=error.model_dump())

    error = ErrorResponse(
        error_kind=ErrorKind.FETCH_ERROR.value,
        error=result.message or "Caption fetch failed",
        retryable=True,
    )
    return JSONResponse(status_code=503, content=error.model_dump())


# ----------------------------------------------------------------------------
# API Routes
# ----------------------------------------------------------------------------

@app.get('/healthz')
async def healthz():
    return {"status": "ok"}


@app.post('/api/pull', response_model=PullResponse)
async def pull(req: PullRequest, fetcher: TranscriptFetcher = Depends(get_fetcher)):
    video_id = extract_video_id(req.url)
    if not video_id:
        raise HTTPException(status_code=422, detail='Invalid YouTube URL')

    logger.info(f"Pulling captions for {video_id}")
    result = await fetcher.fetch_async(video_id, _language_hints(req.languages))
    return _result_response(video_id, result)


@app.get('/api/transcript', response_model=PullResponse)
async def transcript(
    v: Optional[str] = Query(default=None),
    lang: Optional[str] = Query(default=None),
    fetcher: TranscriptFetcher = Depends(get_fetcher),
):
    if not v:
        raise HTTPException(status_code=400, detail='Missing video ID')
    if not is_valid_video_id(v):
        raise HTTPException(status_code=422, detail='Invalid video ID')

    result = await fetcher.fetch_async(v, _language_hints([lang] if lang else None))
    return _result_response(v, result)
