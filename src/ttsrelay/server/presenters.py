"""Rendering of SynthesisResult for HTTP responses.

The orchestrator returns one result shape; the routes pick between a JSON
envelope (inline base64 audio and/or a cache URL) and raw audio bytes.
"""

import base64
from urllib.parse import quote

from ..tts.errors import TTSValidationError
from ..tts.models import Codec, SynthesisResult

API_PREFIX = "/api"

MIME_TYPES = {
    Codec.WAV: "audio/wav",
    Codec.MP3: "audio/mpeg",
    Codec.PCM: "audio/pcm",
}


def mime_type_for(codec: Codec | str) -> str:
    """Return the MIME type of a codec, defaulting to audio/wav."""
    try:
        return MIME_TYPES[Codec.parse(codec)]
    except TTSValidationError:
        return "audio/wav"


def audio_url(filename: str) -> str:
    return f"{API_PREFIX}/cache/{filename}"


def to_envelope(result: SynthesisResult, audio: bytes | None = None) -> dict:
    """Build the JSON envelope of POST /api/tts.

    Args:
        result: Synthesis result
        audio: Audio to inline; defaults to the result's fresh audio
    """
    audio = audio if audio is not None else result.audio_bytes
    data: dict = {
        "voiceType": result.voice_id,
        "sampleRate": result.sample_rate,
        "codec": result.codec.value,
        "emotion": result.emotion,
        "cached": result.cached,
    }
    if result.servable_location:
        data["audioUrl"] = audio_url(result.servable_location)
    if audio is not None:
        data["audioBase64"] = base64.b64encode(audio).decode("ascii")
    return {"success": True, "data": data}


def audio_headers(result: SynthesisResult) -> dict[str, str]:
    """Headers describing raw audio returned by GET /api/tts."""
    return {
        "Content-Disposition": f'inline; filename="tts_audio.{result.codec.value}"',
        "Cache-Control": "public, max-age=3600",
        "X-Voice-Type": str(result.voice_id),
        "X-Sample-Rate": str(result.sample_rate),
        # Header values must be latin-1; emotions are free-form
        "X-Emotion-Category": quote(result.emotion, safe=""),
        "X-Cached": str(result.cached).lower(),
    }


def error_body(message: str) -> dict:
    return {"success": False, "error": message}
