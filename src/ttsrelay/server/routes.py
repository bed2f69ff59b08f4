import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, Response
from pydantic import ValidationError

from .. import __version__
from ..config import TTSDefaults
from ..tts.errors import CacheIOError
from ..tts.models import SUPPORTED_VOICES, SynthesisParameters, SynthesisResult
from ..tts.pipeline import CacheOrchestrator
from .presenters import (
    API_PREFIX,
    audio_headers,
    mime_type_for,
    to_envelope,
)
from .schemas import SynthesizeRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX)


def build_params(req: SynthesizeRequest, defaults: TTSDefaults) -> SynthesisParameters:
    """Fill request gaps from the configured defaults."""
    return SynthesisParameters(
        text=req.text,
        voice_id=req.voice_type if req.voice_type is not None else defaults.voice_id,
        sample_rate=req.sample_rate if req.sample_rate is not None else defaults.sample_rate,
        codec=req.codec or defaults.codec,
        emotion=req.emotion,
    )


async def resolve_with_audio(
    orchestrator: CacheOrchestrator,
    params: SynthesisParameters,
    result: SynthesisResult | None = None,
) -> tuple[SynthesisResult, bytes]:
    """Resolve a request and return its audio bytes.

    If a cache hit can't be read back (purged or damaged in between), the
    request is resolved once more so the caller still gets audio.
    """
    if result is None:
        result = await orchestrator.resolve(params)
    try:
        return result, await orchestrator.load_audio(result)
    except CacheIOError as e:
        logger.warning(f"Cached audio unavailable ({e}), resolving again")

    result = await orchestrator.resolve(params)
    return result, await orchestrator.load_audio(result)


@router.post("/tts")
async def synthesize(req: SynthesizeRequest, request: Request) -> dict:
    """Convert text to audio, returned as a JSON envelope."""
    orchestrator: CacheOrchestrator = request.app.state.orchestrator
    params = build_params(req, request.app.state.config.tts)

    result = await orchestrator.resolve(params)
    audio = None
    if req.inline and result.audio_bytes is None:
        result, audio = await resolve_with_audio(orchestrator, params, result)

    return to_envelope(result, audio)


@router.get("/tts")
async def synthesize_raw(
    request: Request,
    text: str = Query(""),
    voice_type: int | None = Query(None, alias="voiceType"),
    sample_rate: int | None = Query(None, alias="sampleRate"),
    codec: str | None = Query(None),
    emotion: str = Query("neutral"),
) -> Response:
    """Convert text to audio, returned as raw bytes."""
    try:
        req = SynthesizeRequest(
            text=text,
            voice_type=voice_type,
            sample_rate=sample_rate,
            codec=codec,
            emotion=emotion,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    orchestrator: CacheOrchestrator = request.app.state.orchestrator
    params = build_params(req, request.app.state.config.tts)
    result, audio = await resolve_with_audio(orchestrator, params)

    return Response(
        content=audio,
        media_type=mime_type_for(result.codec),
        headers=audio_headers(result),
    )


@router.get("/voices")
async def voices() -> dict:
    """List supported voices."""
    return {"success": True, "data": [v.to_dict() for v in SUPPORTED_VOICES]}


# Declared before /cache/{filename} so "info" is not taken for a file name
@router.get("/cache/info")
async def cache_info(request: Request) -> dict:
    """Report the number and total size of cached entries."""
    orchestrator: CacheOrchestrator = request.app.state.orchestrator
    stats = await orchestrator.stats()
    return {
        "success": True,
        "data": {
            "count": stats.count,
            "totalBytes": stats.total_bytes,
            "size": stats.size_mb,
        },
    }


@router.get("/cache/{filename}")
async def cached_audio(filename: str, request: Request) -> FileResponse:
    """Serve a stored cache entry."""
    orchestrator: CacheOrchestrator = request.app.state.orchestrator
    entry = await asyncio.to_thread(orchestrator.store.entry_for, filename)
    if entry is None:
        raise HTTPException(status_code=404, detail="Cached audio not found")

    return FileResponse(
        entry.storage_path,
        media_type=mime_type_for(entry.codec),
        headers={"Cache-Control": "public, max-age=3600"},
    )


@router.delete("/cache")
async def clear_cache(request: Request) -> dict:
    """Remove every cached entry."""
    orchestrator: CacheOrchestrator = request.app.state.orchestrator
    removed = await orchestrator.purge()
    return {"success": True, "data": {"message": "Cache cleared", "removed": removed}}


@router.get("/health")
async def health() -> dict:
    return {
        "success": True,
        "data": {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
        },
    }
