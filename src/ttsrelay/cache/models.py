"""Data models for cache storage."""

from dataclasses import dataclass
from pathlib import Path

from ..tts.models import Codec


@dataclass(frozen=True)
class CacheEntry:
    """One stored audio artifact.

    Attributes:
        fingerprint: Hex digest of the synthesis parameters
        codec: Audio codec, also the file extension
        byte_length: Size of the stored audio in bytes
        storage_path: Path to the audio file on disk
    """

    fingerprint: str
    codec: Codec
    byte_length: int
    storage_path: Path

    @property
    def filename(self) -> str:
        """Servable file name of the entry (<fingerprint>.<codec>)."""
        return self.storage_path.name


@dataclass(frozen=True)
class CacheStats:
    """Summary of the recognized entries in a cache directory."""

    count: int
    total_bytes: int

    @property
    def size_mb(self) -> str:
        return f"{self.total_bytes / (1024 * 1024):.2f} MB"
