"""Content-addressed audio cache for ttsrelay."""

from pathlib import Path

from .fingerprint import fingerprint
from .models import CacheEntry, CacheStats
from .storage import CacheStore

__all__ = ["CacheEntry", "CacheStats", "CacheStore", "fingerprint", "get_cache_dir"]


def get_cache_dir() -> Path:
    """Get the default ttsrelay audio cache directory.

    The directory is not created here; the cache store creates it lazily
    so a disabled cache never touches the filesystem.

    Returns:
        Path to ~/.cache/ttsrelay/audio
    """
    return Path.home() / ".cache" / "ttsrelay" / "audio"
