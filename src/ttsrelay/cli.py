"""Typer CLI definition for ttsrelay."""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

import typer

from .cache.storage import CacheStore
from .config import RelayConfig, load_config
from .tts.errors import (
    CacheIOError,
    SynthesisFailed,
    TTSValidationError,
    UpstreamAuthError,
)
from .tts.models import (
    DEFAULT_EMOTION,
    SUPPORTED_VOICES,
    SynthesisParameters,
    SynthesisResult,
)

app = typer.Typer(help="Caching text-to-speech relay")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def process_text_input(text: str | None) -> str:
    """Process text input and return the text to synthesize.

    Args:
        text: Optional text input from CLI argument, file or stdin

    Returns:
        The stripped text

    Raises:
        ValueError: If no text is provided
    """
    if text is None or not text.strip():
        raise ValueError("No text provided")

    return text.strip()


def format_voices() -> list[str]:
    """Render the supported voice table, one line per voice."""
    return [
        f"{v.voice_id}  {v.name}  ({v.gender}, {v.language})"
        + (f"  {v.remarks}" if v.remarks else "")
        for v in SUPPORTED_VOICES
    ]


async def synthesize_to_file(
    config: RelayConfig, params: SynthesisParameters, output: Path
) -> SynthesisResult:
    """Resolve one request through the configured stack and save the audio."""
    from .server.app import build_orchestrator

    orchestrator = build_orchestrator(config)
    result = await orchestrator.resolve(params)
    audio = await orchestrator.load_audio(result)

    output.parent.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread(output.write_bytes, audio)
    return result


def _fail(message: str, error: Exception, debug: bool) -> typer.Exit:
    if debug:
        typer.echo(f"Debug - {message}: {error!r}", err=True)
    else:
        typer.echo(f"Error: {error}", err=True)
    return typer.Exit(1)


@app.command()
def serve(
    host: str | None = typer.Option(
        None, "--host", help="Bind address (from config if omitted)"
    ),
    port: int | None = typer.Option(
        None, "--port", help="Port (from config if omitted)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging"),
) -> None:
    """Run the HTTP relay server."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
    )

    from .server.app import run_server

    config = load_config()
    try:
        run_server(config, host=host, port=port, log_level="debug" if debug else "info")
    except (KeyError, UpstreamAuthError) as e:
        raise _fail("Startup failed", e, debug) from None


@app.command()
def speak(
    text: str | None = typer.Argument(None, help="Text to convert to speech"),
    file: Path | None = typer.Option(None, "-f", "--file", help="Read text from file"),
    output: Path | None = typer.Option(
        None, "-o", "--output", help="File to write the audio to"
    ),
    voice: int | None = typer.Option(
        None, "-v", "--voice", help="Voice ID (from config if omitted)"
    ),
    sample_rate: int | None = typer.Option(
        None, "-r", "--sample-rate", help="Sample rate in Hz (from config if omitted)"
    ),
    codec: str | None = typer.Option(
        None, "-c", "--codec", help="wav, mp3 or pcm (from config if omitted)"
    ),
    emotion: str = typer.Option(DEFAULT_EMOTION, "-e", "--emotion", help="Emotion category"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the audio cache"),
    debug: bool = typer.Option(
        False, "--debug", help="Show verbose error messages and cache activity"
    ),
    list_voices: bool = typer.Option(
        False, "--list-voices", help="List available voices and exit"
    ),
    cache_info: bool = typer.Option(
        False, "--cache-info", help="Show cache size and exit"
    ),
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Remove all cached audio and exit"
    ),
) -> None:
    """Synthesize text to an audio file through the cache."""
    # Configure logging for debug mode
    if debug:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)

    if list_voices:
        for line in format_voices():
            typer.echo(line)
        raise typer.Exit(0)

    config = load_config()

    if clear_cache or cache_info:
        store = CacheStore(config.cache.dir, enabled=config.cache.enabled)
        if clear_cache:
            removed = store.purge()
            typer.echo(f"Removed {removed} cached entries from {store.cache_dir}")
        if cache_info:
            stats = store.stats()
            typer.echo(f"Cache directory: {store.cache_dir}")
            typer.echo(f"Entries: {stats.count}")
            typer.echo(f"Size: {stats.size_mb}")
        raise typer.Exit(0)

    # Get text from argument, file, or stdin (in priority order)
    if text is None:
        if file:
            try:
                text = file.read_text()
            except (OSError, UnicodeDecodeError) as e:
                raise _fail(f"Failed to read {file}", e, debug) from None
        elif not sys.stdin.isatty():
            text = sys.stdin.read()

    try:
        input_text = process_text_input(text)
    except ValueError as e:
        raise _fail("Text processing error", e, debug) from None

    if output is None:
        typer.echo("Error: --output is required", err=True)
        raise typer.Exit(1)

    if no_cache:
        config = replace(config, cache=replace(config.cache, enabled=False))

    try:
        params = SynthesisParameters(
            text=input_text,
            voice_id=voice if voice is not None else config.tts.voice_id,
            sample_rate=sample_rate if sample_rate is not None else config.tts.sample_rate,
            codec=codec or config.tts.codec,
            emotion=emotion,
        )
        result = asyncio.run(synthesize_to_file(config, params, output))
    except TTSValidationError as e:
        raise _fail("Invalid parameters", e, debug) from None
    except UpstreamAuthError as e:
        raise _fail("Authentication error", e, debug) from None
    except SynthesisFailed as e:
        raise _fail("Synthesis failed", e, debug) from None
    except KeyError as e:
        raise _fail("Unknown provider", e, debug) from None
    except CacheIOError as e:
        raise _fail("Cache read error", e, debug) from None
    except OSError as e:
        raise _fail("File system error", e, debug) from None

    source = "cache" if result.cached else "upstream"
    typer.echo(f"Audio saved to {output} ({source})")
