"""Cache orchestrator for ttsrelay.

Coordinates the fingerprint, the CacheStore and the upstream
SynthesisGateway so that every entry point (HTTP server, CLI, library
API) resolves synthesis requests the same way.
"""

import asyncio
import logging

from ..cache.fingerprint import fingerprint
from ..cache.models import CacheEntry, CacheStats
from ..cache.storage import CacheStore
from ..providers.base import SynthesisGateway
from .errors import CacheIOError, SynthesisFailed, UpstreamError
from .models import SynthesisParameters, SynthesisResult

logger = logging.getLogger(__name__)


class CacheOrchestrator:
    """Resolves synthesis requests through the audio cache.

    Cache hits are answered from the store without touching the upstream.
    Misses call the gateway once per fingerprint: identical requests that
    arrive while a synthesis is in flight wait for that same call instead
    of starting another one. The shared call is shielded from caller
    cancellation, so an abandoned request never interrupts the upstream
    call or the cache write that follows it.

    Example:
        store = CacheStore(Path("/var/cache/ttsrelay"))
        orchestrator = CacheOrchestrator(store, TencentGateway())

        result = await orchestrator.resolve(
            SynthesisParameters("hello", 301030, 16000, Codec.WAV)
        )
        # First call:  result.cached is False, result.audio_bytes holds audio
        # Second call: result.cached is True, result.servable_location names the file
    """

    def __init__(self, store: CacheStore, gateway: SynthesisGateway) -> None:
        """Initialize orchestrator with its collaborators.

        Args:
            store: Cache store, possibly disabled
            gateway: Upstream TTS gateway
        """
        self.store = store
        self.gateway = gateway
        self._inflight: dict[str, asyncio.Task[SynthesisResult]] = {}

        logger.debug(
            f"CacheOrchestrator initialized with gateway={type(gateway).__name__}, "
            f"cache={'enabled' if store.enabled else 'disabled'}"
        )

    async def resolve(self, params: SynthesisParameters) -> SynthesisResult:
        """Return audio for the parameters, from cache or fresh synthesis.

        Args:
            params: Validated synthesis parameters

        Returns:
            SynthesisResult with cached=True and servable_location on a hit,
            or cached=False and audio_bytes on a miss

        Raises:
            SynthesisFailed: If the upstream synthesis fails
        """
        key = fingerprint(params)

        # A disabled cache has nothing to share, every request goes upstream
        if not self.store.enabled:
            return await self._synthesize_and_store(key, params)

        task = self._inflight.get(key)
        if task is None:
            # === CACHE LOOKUP PHASE ===
            entry = await asyncio.to_thread(self.store.lookup, key, params.codec)
            if entry is not None:
                return self._hit(params, entry)

            task = self._inflight.get(key)

        if task is None:
            logger.debug(f"Cache miss - synthesizing {key[:12]}")
            task = asyncio.create_task(self._recheck_and_synthesize(key, params))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        else:
            logger.debug(f"Joining in-flight synthesis for {key[:12]}")

        return await asyncio.shield(task)

    def _hit(self, params: SynthesisParameters, entry: CacheEntry) -> SynthesisResult:
        logger.info(
            f"Cache hit for '{params.text[:50]}' ({entry.filename}, "
            f"{entry.byte_length} bytes)"
        )
        return SynthesisResult.from_params(
            params, cached=True, servable_location=entry.filename
        )

    async def _recheck_and_synthesize(
        self, key: str, params: SynthesisParameters
    ) -> SynthesisResult:
        # A synthesis for this key may have finished during the caller's lookup.
        # Its entry is stored before its task leaves the in-flight table.
        entry = await asyncio.to_thread(self.store.lookup, key, params.codec)
        if entry is not None:
            return self._hit(params, entry)
        return await self._synthesize_and_store(key, params)

    def _forget(self, key: str, task: asyncio.Task[SynthesisResult]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome as retrieved even if every caller went away
        if not task.cancelled():
            task.exception()

    async def _synthesize_and_store(
        self, key: str, params: SynthesisParameters
    ) -> SynthesisResult:
        # === SYNTHESIS PHASE ===
        try:
            logger.debug(f"Calling {type(self.gateway).__name__} for synthesis")
            audio_bytes = await self.gateway.synthesize(params)
        except UpstreamError as e:
            logger.error(f"Upstream synthesis failed: {e}")
            raise SynthesisFailed(
                f"Synthesis failed: {e}", e.status_code, original_error=e
            ) from e
        except Exception as e:
            logger.error(f"Unexpected gateway failure: {e!r}")
            raise SynthesisFailed(f"Synthesis failed: {e}", original_error=e) from e

        if not audio_bytes:
            raise SynthesisFailed("Synthesis failed: upstream returned no audio")

        # === CACHE STORE PHASE ===
        entry = None
        try:
            entry = await asyncio.to_thread(
                self.store.insert, key, params.codec, audio_bytes
            )
        except Exception as e:
            logger.warning(f"Failed to cache audio: {e}. Continuing without caching.")

        if entry is not None:
            logger.info(f"Synthesized and cached {entry.filename} ({len(audio_bytes)} bytes)")
        else:
            logger.info(f"Synthesized {len(audio_bytes)} bytes (not cached)")

        return SynthesisResult.from_params(
            params,
            cached=False,
            audio_bytes=audio_bytes,
            servable_location=entry.filename if entry is not None else None,
        )

    async def stats(self) -> CacheStats:
        """Summarize the cache directory."""
        return await asyncio.to_thread(self.store.stats)

    async def purge(self) -> int:
        """Remove every cache entry.

        Returns:
            Number of entries removed
        """
        return await asyncio.to_thread(self.store.purge)

    async def load_audio(self, result: SynthesisResult) -> bytes:
        """Return the audio of a result, reading it from the cache on a hit.

        Raises:
            CacheIOError: If the cached entry vanished or can't be read
        """
        if result.audio_bytes is not None:
            return result.audio_bytes

        if result.servable_location is None:
            raise CacheIOError("Result carries neither audio nor a cache location")

        entry = await asyncio.to_thread(self.store.entry_for, result.servable_location)
        if entry is None:
            raise CacheIOError(f"Cache entry {result.servable_location} is gone")
        return await asyncio.to_thread(self.store.read, entry)
