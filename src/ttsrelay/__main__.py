"""Entry point for running ttsrelay as a module."""

from .cli import app


def main() -> None:
    """Main entry point for the ttsrelay CLI application."""
    app()


if __name__ == "__main__":
    main()
