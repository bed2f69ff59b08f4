"""Pytest configuration and fixtures for ttsrelay tests."""

import os
import sys
from collections.abc import Generator
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

import ttsrelay.config
from ttsrelay.providers import ProviderRegistry


@pytest.fixture(autouse=True)
def isolate_config(monkeypatch, tmp_path) -> None:
    """Keep every test away from the user's config file and env overrides."""
    for name in list(os.environ):
        if name.startswith("TTSRELAY_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("TTSRELAY_CONFIG", str(tmp_path / "config" / "config.toml"))
    monkeypatch.setattr(ttsrelay.config, "_cached_config", None)


@pytest.fixture
def restore_registry() -> Generator[None]:
    """Restore the provider registry after tests that mutate it."""
    saved = dict(ProviderRegistry._providers)
    yield
    ProviderRegistry._providers.clear()
    ProviderRegistry._providers.update(saved)
