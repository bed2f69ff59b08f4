"""High-level API for ttsrelay library usage."""

from dataclasses import replace

from .config import load_config
from .server.app import build_orchestrator
from .tts.models import DEFAULT_EMOTION, SynthesisParameters, SynthesisResult


async def synthesize(
    text: str,
    voice_id: int | None = None,
    sample_rate: int | None = None,
    codec: str | None = None,
    emotion: str = DEFAULT_EMOTION,
    cache: bool | None = None,
) -> SynthesisResult:
    """Synthesize speech from text through the configured cache and provider.

    Args:
        text: Text to synthesize (1-150 characters)
        voice_id: Voice from the supported voice table (from config if omitted)
        sample_rate: Sample rate in Hz (from config if omitted)
        codec: "wav", "mp3" or "pcm" (from config if omitted)
        emotion: Emotion category
        cache: Whether to use the audio cache (from config if omitted)

    Returns:
        SynthesisResult; on a cache hit audio_bytes is None and
        servable_location names the file in the cache directory

    Raises:
        TTSValidationError: If the parameters are invalid
        SynthesisFailed: If the upstream synthesis fails
        UpstreamAuthError: If provider credentials are missing
        KeyError: If the configured provider is unknown
    """
    config = load_config()
    if cache is not None:
        config = replace(config, cache=replace(config.cache, enabled=cache))

    params = SynthesisParameters(
        text=text,
        voice_id=voice_id if voice_id is not None else config.tts.voice_id,
        sample_rate=sample_rate if sample_rate is not None else config.tts.sample_rate,
        codec=codec or config.tts.codec,
        emotion=emotion,
    )

    orchestrator = build_orchestrator(config)
    return await orchestrator.resolve(params)
