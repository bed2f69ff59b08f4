"""HTTP server for ttsrelay."""

from .app import build_orchestrator, create_app, run_server

__all__ = ["build_orchestrator", "create_app", "run_server"]
