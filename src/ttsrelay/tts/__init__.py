"""TTS domain package for ttsrelay.

Holds the synthesis data models, the error hierarchy and the cache
orchestrator (ttsrelay.tts.pipeline).
"""

from .errors import (
    CacheIOError,
    EmptyAudioError,
    SynthesisFailed,
    TTSError,
    TTSValidationError,
    UpstreamAuthError,
    UpstreamError,
)
from .models import (
    SUPPORTED_VOICES,
    Codec,
    SynthesisParameters,
    SynthesisResult,
    VoiceInfo,
)

__all__ = [
    "SUPPORTED_VOICES",
    "CacheIOError",
    "Codec",
    "EmptyAudioError",
    "SynthesisFailed",
    "SynthesisParameters",
    "SynthesisResult",
    "TTSError",
    "TTSValidationError",
    "UpstreamAuthError",
    "UpstreamError",
    "VoiceInfo",
]
