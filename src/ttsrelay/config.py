"""Configuration management for ttsrelay.

Loads configuration from ~/.config/ttsrelay/config.toml (or the file named
by $TTSRELAY_CONFIG).
Priority chain: CLI flags > env vars > config file.
"""

import os
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .cache import get_cache_dir
from .tts.models import VOICE_IDS, Codec

CONFIG_DIR = Path.home() / ".config" / "ttsrelay"
CONFIG_PATH = CONFIG_DIR / "config.toml"

DEFAULT_CONFIG = """\
# ttsrelay configuration

[server]
# Bind address: "127.0.0.1" = localhost only, "0.0.0.0" = allow LAN access
host = "127.0.0.1"
port = 3000

[provider]
# Upstream TTS service: "tencent" (Tencent Cloud TTS) or "elevenlabs"
name = "tencent"

# Tencent Cloud region
region = "ap-beijing"

[tts]
# Defaults for requests that leave these fields out
voice_id = 301030
sample_rate = 16000
codec = "wav"

[cache]
# Disk cache of synthesized audio, keyed by request fingerprint
enabled = true

# Cache directory (defaults to ~/.cache/ttsrelay/audio)
# dir = "/var/cache/ttsrelay"

# ElevenLabs voice mapping: numeric voice id -> ElevenLabs voice id
# [elevenlabs]
# model = "eleven_turbo_v2_5"
# [elevenlabs.voices]
# 301030 = "21m00Tcm4TlvDq8ikWAM"

# Credentials are read from environment variables, not this file:
#   TENCENTCLOUD_SECRET_ID / TENCENTCLOUD_SECRET_KEY - Tencent provider
#   ELEVENLABS_API_KEY                               - ElevenLabs provider
"""

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server configuration."""

    host: str
    port: int


@dataclass(frozen=True)
class ProviderConfig:
    """Upstream provider configuration."""

    name: str
    region: str = "ap-beijing"
    elevenlabs_model: str = "eleven_turbo_v2_5"
    elevenlabs_voices: dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TTSDefaults:
    """Default synthesis parameters."""

    voice_id: int
    sample_rate: int
    codec: Codec


@dataclass(frozen=True)
class CacheConfig:
    """Audio cache configuration."""

    enabled: bool
    dir: Path


@dataclass(frozen=True)
class RelayConfig:
    """Top-level ttsrelay configuration."""

    server: ServerConfig
    provider: ProviderConfig
    tts: TTSDefaults
    cache: CacheConfig


_cached_config: RelayConfig | None = None


def get_config_path() -> Path:
    """Return the config file path, honoring $TTSRELAY_CONFIG."""
    override = os.getenv("TTSRELAY_CONFIG")
    return Path(override).expanduser() if override else CONFIG_PATH


def generate_config(path: Path | None = None) -> Path:
    """Generate default config file at ~/.config/ttsrelay/config.toml."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG)
    return path


def _parse_bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    return value.strip().lower() in TRUE_VALUES


def _config_error(message: str, path: Path) -> SystemExit:
    print(message, file=sys.stderr)
    print(f"Edit {path} or delete it to regenerate.", file=sys.stderr)
    return SystemExit(1)


def load_config(path: Path | None = None) -> RelayConfig:
    """Load configuration from config file with env var overrides.

    On first run, generates the config file and exits so the user
    can review it before proceeding.

    Args:
        path: Explicit config file. Explicit loads bypass the process cache.

    Returns:
        Loaded and validated RelayConfig.

    Raises:
        SystemExit: If config is missing (after generating) or invalid.
    """
    global _cached_config
    if path is None and _cached_config is not None:
        return _cached_config

    config_path = path or get_config_path()

    if not config_path.exists():
        generated = generate_config(config_path)
        print(
            f"No config found. Generated {generated} - review and run again.",
            file=sys.stderr,
        )
        raise SystemExit(1)

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise _config_error(f"Invalid TOML in config: {e}", config_path) from e

    server = data.get("server", {})
    provider = data.get("provider", {})
    tts = data.get("tts", {})
    cache = data.get("cache", {})
    elevenlabs = data.get("elevenlabs", {})

    # Validate required fields
    missing = []
    if "host" not in server:
        missing.append("server.host")
    if "name" not in provider:
        missing.append("provider.name")
    if "voice_id" not in tts:
        missing.append("tts.voice_id")
    if "sample_rate" not in tts:
        missing.append("tts.sample_rate")
    if "codec" not in tts:
        missing.append("tts.codec")
    if "enabled" not in cache:
        missing.append("cache.enabled")

    if missing:
        raise _config_error(
            f"Missing required config values: {', '.join(missing)}", config_path
        )

    # Env vars override config file values
    cache_dir = os.getenv("TTSRELAY_CACHE_DIR", cache.get("dir", ""))
    try:
        config = RelayConfig(
            server=ServerConfig(
                host=os.getenv("TTSRELAY_HOST", server["host"]),
                port=int(os.getenv("TTSRELAY_PORT", server.get("port", 3000))),
            ),
            provider=ProviderConfig(
                name=os.getenv("TTSRELAY_PROVIDER", provider["name"]),
                region=os.getenv("TTSRELAY_REGION", provider.get("region", "ap-beijing")),
                elevenlabs_model=elevenlabs.get("model", "eleven_turbo_v2_5"),
                elevenlabs_voices={
                    int(k): str(v) for k, v in elevenlabs.get("voices", {}).items()
                },
            ),
            tts=TTSDefaults(
                voice_id=int(os.getenv("TTSRELAY_VOICE_ID", tts["voice_id"])),
                sample_rate=int(os.getenv("TTSRELAY_SAMPLE_RATE", tts["sample_rate"])),
                codec=Codec.parse(os.getenv("TTSRELAY_CODEC", tts["codec"])),
            ),
            cache=CacheConfig(
                enabled=_parse_bool(
                    os.getenv("TTSRELAY_CACHE_ENABLED", cache["enabled"])
                ),
                dir=Path(cache_dir).expanduser() if cache_dir else get_cache_dir(),
            ),
        )
    except ValueError as e:
        raise _config_error(f"Invalid config value: {e}", config_path) from e

    if config.tts.voice_id not in VOICE_IDS:
        raise _config_error(
            f"Invalid config value: unsupported tts.voice_id {config.tts.voice_id}",
            config_path,
        )
    if config.tts.sample_rate <= 0:
        raise _config_error(
            f"Invalid config value: tts.sample_rate must be positive, "
            f"got {config.tts.sample_rate}",
            config_path,
        )

    if path is None:
        _cached_config = config
    return config
