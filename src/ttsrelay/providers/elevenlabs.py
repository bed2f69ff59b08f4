"""ElevenLabs text-to-speech gateway implementation."""

import asyncio
import io
import logging
import os
from typing import TYPE_CHECKING

import numpy as np
import soundfile as sf
from elevenlabs import VoiceSettings
from elevenlabs.client import ElevenLabs

from ..tts.errors import EmptyAudioError, UpstreamAuthError, UpstreamError
from ..tts.models import Codec, SynthesisParameters
from .base import SynthesisGateway

if TYPE_CHECKING:
    from ..config import ProviderConfig

logger = logging.getLogger(__name__)

PCM_SAMPLE_RATES = frozenset({8000, 16000, 22050, 24000, 44100, 48000})


def _map_error(e: Exception, action: str) -> UpstreamError:
    """Translate an ElevenLabs SDK failure into the upstream error hierarchy."""
    if "unauthorized" in str(e).lower() or "401" in str(e):
        return UpstreamAuthError(f"Authentication failed: {e}", 401, e)
    elif "429" in str(e):
        return UpstreamError(f"Rate limit exceeded: {e}", 429, e)
    elif "5" in str(e)[:1]:  # 5xx server errors
        return UpstreamError(f"Server error: {e}", original_error=e)
    else:
        return UpstreamError(f"{action} failed: {e}", original_error=e)


def pcm_to_wav(pcm_bytes: bytes, sample_rate: int) -> bytes:
    """Wrap signed 16-bit little-endian mono PCM in a WAV container."""
    # A trailing half sample can't be decoded
    usable = len(pcm_bytes) - len(pcm_bytes) % 2
    samples = np.frombuffer(pcm_bytes[:usable], dtype="<i2")
    buf = io.BytesIO()
    sf.write(buf, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


class ElevenLabsGateway(SynthesisGateway):
    """ElevenLabs TTS gateway.

    ElevenLabs voices are addressed by string ids, so numeric voice ids are
    translated through a configured mapping. Unmapped voices fall back to
    the first voice of the account. ElevenLabs has no emotion parameter;
    the emotion is still part of the cache key but not sent upstream.
    """

    name = "elevenlabs"

    def __init__(
        self,
        api_key: str | None = None,
        model_id: str = "eleven_turbo_v2_5",
        voice_map: dict[int, str] | None = None,
    ) -> None:
        """Initialize ElevenLabs gateway.

        Args:
            api_key: ElevenLabs API key. If not provided, reads from
                    ELEVENLABS_API_KEY environment variable.
            model_id: ElevenLabs model ID to use
            voice_map: Numeric voice id -> ElevenLabs voice id

        Raises:
            UpstreamAuthError: If API key is not provided or invalid.
        """
        self._api_key = api_key or os.getenv("ELEVENLABS_API_KEY")
        if not self._api_key:
            raise UpstreamAuthError(
                "ElevenLabs API key not found. Set ELEVENLABS_API_KEY environment "
                "variable or provide api_key parameter."
            )

        try:
            self._client = ElevenLabs(api_key=self._api_key)
        except Exception as e:
            raise UpstreamAuthError(
                f"Failed to initialize ElevenLabs client: {e}", original_error=e
            ) from e

        self.model_id = model_id
        self.voice_map = dict(voice_map or {})

        # Cache for voices to avoid repeated API calls
        self._voices_cache: list[str] | None = None

    @classmethod
    def from_config(cls, config: "ProviderConfig") -> "ElevenLabsGateway":
        return cls(model_id=config.elevenlabs_model, voice_map=config.elevenlabs_voices)

    @staticmethod
    def output_format(params: SynthesisParameters) -> str:
        """Pick the ElevenLabs output format for the requested codec.

        WAV is requested as raw PCM and wrapped locally.

        Raises:
            UpstreamError: If the sample rate has no PCM output format
        """
        if params.codec is Codec.MP3:
            return "mp3_22050_32" if params.sample_rate == 22050 else "mp3_44100_128"
        if params.sample_rate not in PCM_SAMPLE_RATES:
            raise UpstreamError(
                f"ElevenLabs does not support {params.sample_rate} Hz PCM output", 400
            )
        return f"pcm_{params.sample_rate}"

    async def _resolve_voice(self, voice_id: int) -> str:
        if voice_id in self.voice_map:
            return self.voice_map[voice_id]

        # Use first available voice if not mapped
        voices = await self.list_voices()
        if not voices:
            raise UpstreamError("No voices available")
        logger.debug(f"No ElevenLabs voice mapped for {voice_id}, using {voices[0]}")
        return voices[0]

    async def synthesize(self, params: SynthesisParameters) -> bytes:
        """Convert text to speech audio bytes.

        Args:
            params: Validated synthesis parameters

        Returns:
            Audio data as bytes in the requested codec

        Raises:
            UpstreamError: If API call fails
            UpstreamAuthError: If authentication fails
            EmptyAudioError: If the API returns no audio
        """
        output_format = self.output_format(params)
        voice = await self._resolve_voice(params.voice_id)
        voice_settings = VoiceSettings(
            stability=0.65,
            similarity_boost=0.75,
            style=0.4,
            use_speaker_boost=True,
        )

        # Run synchronous ElevenLabs client in thread to avoid blocking event loop
        def _sync_convert() -> bytes:
            audio_generator = self._client.text_to_speech.convert(
                text=params.text,
                voice_id=voice,
                model_id=self.model_id,
                output_format=output_format,
                voice_settings=voice_settings,
            )
            # Collect all audio chunks
            return b"".join(audio_generator)

        try:
            audio_bytes = await asyncio.to_thread(_sync_convert)
        except Exception as e:
            raise _map_error(e, "API call") from e

        if not audio_bytes:
            raise EmptyAudioError("No audio data received from API")

        if params.codec is Codec.WAV:
            audio_bytes = await asyncio.to_thread(
                pcm_to_wav, audio_bytes, params.sample_rate
            )

        return audio_bytes

    async def list_voices(self) -> list[str]:
        """Get ids of the voices available to the account.

        Results are cached after first call to avoid repeated API requests.

        Raises:
            UpstreamError: If API call fails
            UpstreamAuthError: If authentication fails
        """
        if self._voices_cache is not None:
            return self._voices_cache

        def _sync_get_voices() -> list[str]:
            response = self._client.voices.get_all()
            return [voice.voice_id for voice in response.voices]

        try:
            voices = await asyncio.to_thread(_sync_get_voices)
        except Exception as e:
            raise _map_error(e, "Listing voices") from e

        self._voices_cache = voices
        return voices
