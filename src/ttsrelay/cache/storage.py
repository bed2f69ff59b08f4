"""Disk-backed content-addressed audio storage."""

import contextlib
import logging
import os
import re
import tempfile
from pathlib import Path

from ..tts.errors import CacheIOError
from ..tts.models import Codec
from .models import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

_CODECS = "|".join(c.value for c in Codec)
ENTRY_PATTERN = re.compile(rf"^(?P<fingerprint>[0-9a-f]{{64}})\.(?P<codec>{_CODECS})$")
PARTIAL_PATTERN = re.compile(rf"^\.[0-9a-f]{{64}}\.({_CODECS})\.[^/]+\.part$")


class CacheStore:
    """Content-addressed store for synthesized audio.

    Each entry is a single file named ``<fingerprint>.<codec>`` holding the
    raw audio bytes. Files are written once through a temporary sibling and
    an atomic rename, so readers never observe a partially written entry.
    Entries are never modified in place and are only removed by purge().

    Lookup and insert treat filesystem errors as cache misses or skipped
    writes: caching is an optimization and must never fail a synthesis.
    """

    def __init__(self, cache_dir: Path, enabled: bool = True):
        """Initialize cache store rooted at the given directory.

        Args:
            cache_dir: Directory holding cache entries
            enabled: When False, lookup always misses and insert writes nothing
        """
        self.cache_dir = Path(cache_dir)
        self.enabled = enabled

        if enabled:
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Could not create cache directory {self.cache_dir}: {e}")

    def _entry_path(self, fingerprint: str, codec: Codec) -> Path:
        filename = f"{fingerprint}.{codec.value}"
        if not ENTRY_PATTERN.match(filename):
            raise ValueError(f"Invalid cache fingerprint: {fingerprint!r}")
        return self.cache_dir / filename

    def lookup(self, fingerprint: str, codec: Codec) -> CacheEntry | None:
        """Find the stored entry for a fingerprint and codec.

        Args:
            fingerprint: Hex digest from fingerprint()
            codec: Audio codec of the entry

        Returns:
            CacheEntry if a non-empty file exists, None otherwise
        """
        if not self.enabled:
            return None

        codec = Codec.parse(codec)
        path = self._entry_path(fingerprint, codec)
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            logger.debug(f"Cache miss: {fingerprint[:12]}.{codec.value}")
            return None
        except OSError as e:
            logger.warning(f"Cache lookup failed for {path.name}, treating as miss: {e}")
            return None

        if size == 0:
            logger.warning(f"Ignoring empty cache file: {path.name}")
            return None

        logger.debug(f"Cache hit: {fingerprint[:12]}.{codec.value} ({size} bytes)")
        return CacheEntry(
            fingerprint=fingerprint, codec=codec, byte_length=size, storage_path=path
        )

    def insert(
        self, fingerprint: str, codec: Codec, audio_bytes: bytes
    ) -> CacheEntry | None:
        """Store audio bytes under a fingerprint and codec.

        Best-effort: failures are logged and reported as None, never raised.

        Args:
            fingerprint: Hex digest from fingerprint()
            codec: Audio codec of the data
            audio_bytes: Raw audio to store

        Returns:
            The stored CacheEntry, or None if caching is disabled or failed
        """
        if not self.enabled:
            return None

        codec = Codec.parse(codec)
        path = self._entry_path(fingerprint, codec)
        if not audio_bytes:
            logger.warning(f"Refusing to cache empty audio for {path.name}")
            return None

        try:
            self._write_atomic(path, audio_bytes)
        except CacheIOError as e:
            logger.warning(f"Failed to cache audio, continuing without cache: {e}")
            return None

        logger.debug(f"Cache stored: {path.name} ({len(audio_bytes)} bytes)")
        return CacheEntry(
            fingerprint=fingerprint,
            codec=codec,
            byte_length=len(audio_bytes),
            storage_path=path,
        )

    def _write_atomic(self, path: Path, data: bytes) -> None:
        """Write data to a temporary sibling file and rename it into place.

        Raises:
            CacheIOError: If any step fails; the temporary file is removed
        """
        tmp_path: Path | None = None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.cache_dir, prefix=f".{path.name}.", suffix=".part"
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink(missing_ok=True)
            raise CacheIOError(f"Failed to write {path.name}: {e}", e) from e

    def read(self, entry: CacheEntry) -> bytes:
        """Read the audio bytes of a stored entry.

        Raises:
            CacheIOError: If the file cannot be read
        """
        try:
            return entry.storage_path.read_bytes()
        except OSError as e:
            raise CacheIOError(f"Failed to read {entry.filename}: {e}", e) from e

    def entry_for(self, filename: str) -> CacheEntry | None:
        """Resolve a servable file name to its stored entry.

        Only names matching the entry pattern are accepted, so arbitrary
        paths can't be requested through this method. Works whether or not
        the store is enabled, so entries written earlier stay servable.

        Returns:
            CacheEntry for the file, or None if unknown
        """
        match = ENTRY_PATTERN.match(filename)
        if match is None:
            return None
        path = self.cache_dir / filename
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not access cache file {filename}: {e}")
            return None
        if size == 0:
            return None
        return CacheEntry(
            fingerprint=match["fingerprint"],
            codec=Codec(match["codec"]),
            byte_length=size,
            storage_path=path,
        )

    def entries(self) -> list[CacheEntry]:
        """List the recognized entries in the cache directory.

        Files that are not cache entries are ignored, as are entries
        removed while the directory is being listed.
        """
        try:
            with os.scandir(self.cache_dir) as it:
                found = [e for e in it if ENTRY_PATTERN.match(e.name) and e.is_file()]
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Failed to list cache directory {self.cache_dir}: {e}")
            return []

        entries = []
        for dir_entry in found:
            try:
                size = dir_entry.stat().st_size
            except FileNotFoundError:
                # Purged concurrently
                continue
            match = ENTRY_PATTERN.match(dir_entry.name)
            entries.append(
                CacheEntry(
                    fingerprint=match["fingerprint"],
                    codec=Codec(match["codec"]),
                    byte_length=size,
                    storage_path=self.cache_dir / dir_entry.name,
                )
            )
        return entries

    def stats(self) -> CacheStats:
        """Count recognized entries and their total size."""
        entries = self.entries()
        return CacheStats(
            count=len(entries), total_bytes=sum(e.byte_length for e in entries)
        )

    def purge(self) -> int:
        """Remove every cache entry.

        Only recognized entry files and abandoned temporary writes of this
        store are removed. Any other file in the directory is left alone.
        Safe to call on an empty or missing directory.

        Returns:
            Number of entries removed
        """
        try:
            with os.scandir(self.cache_dir) as it:
                names = [e.name for e in it if e.is_file()]
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.warning(f"Failed to list cache directory {self.cache_dir}: {e}")
            return 0

        removed = 0
        for name in names:
            is_entry = ENTRY_PATTERN.match(name) is not None
            if not is_entry and not PARTIAL_PATTERN.match(name):
                continue
            try:
                (self.cache_dir / name).unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to remove cache file {name}: {e}")
                continue
            if is_entry:
                removed += 1

        logger.info(f"Cache purged: {removed} entries removed from {self.cache_dir}")
        return removed
