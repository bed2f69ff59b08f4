"""Unit tests for CacheStore lookup, insert, stats and purge logic."""

import os
import sys
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from ttsrelay.cache.storage import CacheStore
from ttsrelay.tts.errors import CacheIOError
from ttsrelay.tts.models import Codec

KEY = "0123456789abcdef" * 4
OTHER_KEY = "fedcba9876543210" * 4


class TestCacheStoreLookup:
    """Test lookup behavior."""

    def test_lookup_missing_entry_returns_none(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            assert store.lookup(KEY, Codec.WAV) is None

    def test_lookup_after_insert_returns_entry(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.WAV, b"audio-data")

            entry = store.lookup(KEY, Codec.WAV)

            assert entry is not None
            assert entry.fingerprint == KEY
            assert entry.codec is Codec.WAV
            assert entry.byte_length == len(b"audio-data")
            assert entry.storage_path == Path(temp_dir) / f"{KEY}.wav"

    def test_lookup_is_per_codec(self) -> None:
        """Test the same fingerprint under another codec is a separate entry."""
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.WAV, b"audio-data")
            assert store.lookup(KEY, Codec.MP3) is None

    def test_lookup_ignores_empty_file(self) -> None:
        """Test a zero-length file is never served as a hit."""
        with TemporaryDirectory() as temp_dir:
            (Path(temp_dir) / f"{KEY}.wav").write_bytes(b"")
            store = CacheStore(Path(temp_dir))
            assert store.lookup(KEY, Codec.WAV) is None

    def test_lookup_os_error_is_miss(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            with patch.object(Path, "stat", side_effect=PermissionError("denied")):
                assert store.lookup(KEY, Codec.WAV) is None

    def test_invalid_fingerprint_rejected(self) -> None:
        """Test path-like fingerprints can't escape the cache directory."""
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            with pytest.raises(ValueError, match="Invalid cache fingerprint"):
                store.lookup("../../etc/passwd", Codec.WAV)


class TestCacheStoreInsert:
    """Test insert behavior."""

    def test_insert_writes_exact_bytes(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            entry = store.insert(KEY, Codec.MP3, b"\x00\x01mp3")

            assert entry is not None
            assert entry.filename == f"{KEY}.mp3"
            assert (Path(temp_dir) / f"{KEY}.mp3").read_bytes() == b"\x00\x01mp3"

    def test_insert_leaves_no_temporary_files(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.WAV, b"audio")
            assert os.listdir(temp_dir) == [f"{KEY}.wav"]

    def test_insert_creates_missing_directory(self) -> None:
        with TemporaryDirectory() as temp_dir:
            cache_dir = Path(temp_dir) / "nested" / "audio"
            store = CacheStore(cache_dir)
            assert store.insert(KEY, Codec.WAV, b"audio") is not None
            assert (cache_dir / f"{KEY}.wav").exists()

    def test_insert_empty_audio_is_refused(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            assert store.insert(KEY, Codec.WAV, b"") is None
            assert os.listdir(temp_dir) == []

    def test_insert_failure_returns_none_and_cleans_up(self) -> None:
        """Test a failed rename is swallowed and leaves no partial file."""
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            with patch(
                "ttsrelay.cache.storage.os.replace", side_effect=OSError("disk full")
            ):
                assert store.insert(KEY, Codec.WAV, b"audio") is None

            assert os.listdir(temp_dir) == []
            assert store.lookup(KEY, Codec.WAV) is None

    def test_write_atomic_raises_cache_io_error(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            with patch(
                "ttsrelay.cache.storage.os.replace", side_effect=OSError("disk full")
            ):
                with pytest.raises(CacheIOError, match="disk full"):
                    store._write_atomic(Path(temp_dir) / f"{KEY}.wav", b"audio")

    def test_reinsert_replaces_whole_file(self) -> None:
        """Test a racing second insert of the same key leaves one intact file."""
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.WAV, b"first")
            store.insert(KEY, Codec.WAV, b"second")

            assert os.listdir(temp_dir) == [f"{KEY}.wav"]
            assert (Path(temp_dir) / f"{KEY}.wav").read_bytes() == b"second"


class TestCacheStoreDisabled:
    """Test a disabled store is inert."""

    def test_disabled_store_does_not_create_directory(self) -> None:
        with TemporaryDirectory() as temp_dir:
            cache_dir = Path(temp_dir) / "audio"
            CacheStore(cache_dir, enabled=False)
            assert not cache_dir.exists()

    def test_disabled_lookup_misses_and_insert_skips(self) -> None:
        with TemporaryDirectory() as temp_dir:
            (Path(temp_dir) / f"{KEY}.wav").write_bytes(b"audio")
            store = CacheStore(Path(temp_dir), enabled=False)

            assert store.lookup(KEY, Codec.WAV) is None
            assert store.insert(OTHER_KEY, Codec.WAV, b"audio") is None
            assert not (Path(temp_dir) / f"{OTHER_KEY}.wav").exists()


class TestCacheStoreRead:
    def test_read_returns_stored_bytes(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            entry = store.insert(KEY, Codec.PCM, b"pcm-bytes")
            assert entry is not None
            assert store.read(entry) == b"pcm-bytes"

    def test_read_missing_file_raises(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            entry = store.insert(KEY, Codec.PCM, b"pcm-bytes")
            assert entry is not None
            entry.storage_path.unlink()

            with pytest.raises(CacheIOError, match="Failed to read"):
                store.read(entry)


class TestCacheStoreEntryFor:
    """Test resolving servable file names."""

    def test_entry_for_known_file(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.MP3, b"audio")

            entry = store.entry_for(f"{KEY}.mp3")

            assert entry is not None
            assert entry.fingerprint == KEY
            assert entry.codec is Codec.MP3

    @pytest.mark.parametrize(
        "filename",
        [
            "../secret.wav",
            f"{KEY}.ogg",
            f"{KEY.upper()}.wav",
            "notes.txt",
            f".{KEY}.wav.abc.part",
        ],
    )
    def test_entry_for_rejects_foreign_names(self, filename: str) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            assert store.entry_for(filename) is None

    def test_entry_for_missing_file(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            assert store.entry_for(f"{KEY}.wav") is None

    def test_entry_for_works_when_disabled(self) -> None:
        with TemporaryDirectory() as temp_dir:
            (Path(temp_dir) / f"{KEY}.wav").write_bytes(b"audio")
            store = CacheStore(Path(temp_dir), enabled=False)
            assert store.entry_for(f"{KEY}.wav") is not None


class TestCacheStoreStatsAndPurge:
    """Test stats and purge only touch recognized entries."""

    def test_stats_counts_entries_only(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.WAV, b"12345")
            store.insert(OTHER_KEY, Codec.MP3, b"123")
            (Path(temp_dir) / "README.txt").write_text("not audio")

            stats = store.stats()

            assert stats.count == 2
            assert stats.total_bytes == 8

    def test_stats_missing_directory(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir) / "missing", enabled=False)
            stats = store.stats()
            assert (stats.count, stats.total_bytes) == (0, 0)

    def test_purge_removes_entries_and_partials(self) -> None:
        with TemporaryDirectory() as temp_dir:
            cache_dir = Path(temp_dir)
            store = CacheStore(cache_dir)
            store.insert(KEY, Codec.WAV, b"12345")
            store.insert(OTHER_KEY, Codec.PCM, b"123")
            (cache_dir / f".{KEY}.mp3.x1y2z3.part").write_bytes(b"partial")
            (cache_dir / "README.txt").write_text("keep me")

            removed = store.purge()

            assert removed == 2
            assert os.listdir(cache_dir) == ["README.txt"]
            assert store.stats().count == 0

    def test_purge_twice_in_a_row(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.WAV, b"12345")
            store.insert(OTHER_KEY, Codec.MP3, b"123")

            assert store.purge() == 2
            assert store.purge() == 0
            assert store.stats().count == 0

    def test_purge_empty_or_missing_directory(self) -> None:
        with TemporaryDirectory() as temp_dir:
            assert CacheStore(Path(temp_dir)).purge() == 0
            assert CacheStore(Path(temp_dir) / "missing", enabled=False).purge() == 0

    def test_insert_after_purge(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.WAV, b"audio")
            store.purge()

            assert store.lookup(KEY, Codec.WAV) is None
            assert store.insert(KEY, Codec.WAV, b"audio") is not None
            assert store.lookup(KEY, Codec.WAV) is not None


class TestCacheStoreEntries:
    def test_entries_lists_recognized_files(self) -> None:
        with TemporaryDirectory() as temp_dir:
            store = CacheStore(Path(temp_dir))
            store.insert(KEY, Codec.WAV, b"12345")
            store.insert(OTHER_KEY, Codec.MP3, b"123")
            (Path(temp_dir) / "README.txt").write_text("not audio")

            entries = sorted(store.entries(), key=lambda e: e.fingerprint)

            assert [(e.fingerprint, e.codec, e.byte_length) for e in entries] == [
                (KEY, Codec.WAV, 5),
                (OTHER_KEY, Codec.MP3, 3),
            ]

    def test_entries_of_missing_directory(self) -> None:
        with TemporaryDirectory() as temp_dir:
            assert CacheStore(Path(temp_dir) / "missing", enabled=False).entries() == []
