"""Gateway abstraction for upstream text-to-speech services.

This module provides a registry pattern for managing TTS gateways,
allowing the configured upstream to be selected at runtime.
"""

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from ..config import ProviderConfig

from .base import SynthesisGateway
from .elevenlabs import ElevenLabsGateway
from .tencent import TencentGateway

__all__ = ["ProviderRegistry", "SynthesisGateway"]


class ProviderRegistry:
    """Registry for managing TTS gateways.

    This class maintains a registry of available upstream gateways,
    allowing registration and retrieval by name.
    """

    _providers: ClassVar[dict[str, type[SynthesisGateway]]] = {}

    @classmethod
    def register(cls, name: str, gateway_class: type[SynthesisGateway]) -> None:
        """Register a TTS gateway.

        Args:
            name: Name to register the gateway under
            gateway_class: Gateway class that implements SynthesisGateway
        """
        cls._providers[name] = gateway_class

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._providers)

    @classmethod
    def get(cls, name: str) -> type[SynthesisGateway]:
        """Get a gateway class by name.

        Args:
            name: Name of the gateway to retrieve

        Returns:
            Gateway class

        Raises:
            KeyError: If gateway name not found
        """
        if name not in cls._providers:
            available = ", ".join(cls.names()) if cls._providers else "none"
            raise KeyError(
                f"Provider '{name}' not found. Available providers: {available}"
            )
        return cls._providers[name]

    @classmethod
    def create(cls, config: "ProviderConfig") -> SynthesisGateway:
        """Build the gateway named by the provider configuration.

        Raises:
            KeyError: If gateway name not found
            UpstreamAuthError: If the gateway's credentials are missing
        """
        gateway_class = cls.get(config.name)
        return gateway_class.from_config(config)


# Register gateways
ProviderRegistry.register("tencent", TencentGateway)
ProviderRegistry.register("elevenlabs", ElevenLabsGateway)
