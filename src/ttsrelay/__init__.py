"""ttsrelay - caching text-to-speech relay."""

__version__ = "0.1.0"
__all__ = ["synthesize"]


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name == "synthesize":
        from .api import synthesize

        return synthesize
    raise AttributeError(f"module 'ttsrelay' has no attribute {name!r}")
