"""Abstract base class for upstream text-to-speech gateways.

This module defines the boundary the cache core consumes: one call that
turns validated synthesis parameters into audio bytes.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from ..tts.models import SynthesisParameters

if TYPE_CHECKING:
    from ..config import ProviderConfig


class SynthesisGateway(ABC):
    """Abstract base class for upstream TTS gateways.

    All gateways must inherit from this class and implement synthesize().
    Implementations translate vendor failures into the ttsrelay error
    hierarchy:

        UpstreamAuthError  - credentials missing or rejected
        UpstreamError      - transport, quota or server failure
        EmptyAudioError    - success status but no audio payload

    Gateways never retry; retry policy belongs to the caller.
    """

    name: ClassVar[str] = ""

    @classmethod
    def from_config(cls, config: "ProviderConfig") -> "SynthesisGateway":
        """Build the gateway from provider configuration."""
        return cls()

    @abstractmethod
    async def synthesize(self, params: SynthesisParameters) -> bytes:
        """Convert synthesis parameters to audio bytes.

        Args:
            params: Validated synthesis parameters

        Returns:
            Audio data encoded with params.codec

        Raises:
            UpstreamError: If synthesis fails
        """
        pass
