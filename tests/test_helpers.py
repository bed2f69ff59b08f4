"""Test helpers shared by unit and integration tests."""

import asyncio
from pathlib import Path

from ttsrelay.config import (
    CacheConfig,
    ProviderConfig,
    RelayConfig,
    ServerConfig,
    TTSDefaults,
)
from ttsrelay.providers.base import SynthesisGateway
from ttsrelay.tts.models import Codec, SynthesisParameters

# Smallest WAV-looking payload the tests need; contents are never decoded
FAKE_AUDIO = b"RIFF\x24\x00\x00\x00WAVEfmt fake-audio-payload"


class FakeGateway(SynthesisGateway):
    """In-memory gateway that records every upstream call.

    Args:
        audio: Bytes returned by each call
        error: Exception raised by each call instead of returning audio
        delay: Seconds to wait before answering, to hold calls in flight
    """

    name = "fake"

    def __init__(
        self,
        audio: bytes = FAKE_AUDIO,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.audio = audio
        self.error = error
        self.delay = delay
        self.calls: list[SynthesisParameters] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def synthesize(self, params: SynthesisParameters) -> bytes:
        self.calls.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.audio


def make_params(
    text: str = "你好，欢迎使用语音合成服务",
    voice_id: int = 301030,
    sample_rate: int = 16000,
    codec: Codec | str = Codec.WAV,
    emotion: str = "neutral",
) -> SynthesisParameters:
    """Build synthesis parameters with the service defaults."""
    return SynthesisParameters(text, voice_id, sample_rate, codec, emotion)


def make_config(cache_dir: Path, enabled: bool = True) -> RelayConfig:
    """Build a config pointing the cache at a test directory."""
    return RelayConfig(
        server=ServerConfig(host="127.0.0.1", port=3000),
        provider=ProviderConfig(name="fake"),
        tts=TTSDefaults(voice_id=301030, sample_rate=16000, codec=Codec.WAV),
        cache=CacheConfig(enabled=enabled, dir=cache_dir),
    )
