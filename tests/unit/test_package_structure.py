"""Test package structure and imports."""

import sys
from pathlib import Path

import pytest

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))


def test_package_imports() -> None:
    """Test that ttsrelay package can be imported."""
    import ttsrelay

    assert ttsrelay.__version__ == "0.1.0"


def test_synthesize_is_lazily_exported() -> None:
    import ttsrelay
    from ttsrelay.api import synthesize

    assert ttsrelay.synthesize is synthesize


def test_unknown_attribute_raises() -> None:
    import ttsrelay

    with pytest.raises(AttributeError):
        ttsrelay.does_not_exist  # noqa: B018


def test_main_module_imports() -> None:
    """Test that main module can be imported without error."""
    from ttsrelay.__main__ import main

    assert callable(main)
