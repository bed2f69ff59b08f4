"""Integration tests for CLI execution."""

import os
import subprocess
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from test_helpers import FAKE_AUDIO, FakeGateway

from ttsrelay.cli import app
from ttsrelay.config import DEFAULT_CONFIG
from ttsrelay.providers import ProviderRegistry

# Project root for running tests
PROJECT_ROOT = Path(__file__).parent.parent.parent

runner = CliRunner()


def run_module(*args: str, env: dict | None = None) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "ttsrelay", *args],
        cwd=PROJECT_ROOT,
        env={**os.environ, "PYTHONPATH": "src", **(env or {})},
        capture_output=True,
        text=True,
    )


@pytest.fixture
def fake_provider(monkeypatch, tmp_path, restore_registry) -> FakeGateway:
    """Point the CLI at a config using an in-memory gateway."""
    gateway = FakeGateway()
    ProviderRegistry.register("fake", FakeGateway)
    monkeypatch.setattr(FakeGateway, "from_config", classmethod(lambda cls, c: gateway))

    config_path = tmp_path / "config.toml"
    config_path.write_text(
        DEFAULT_CONFIG.replace('name = "tencent"', 'name = "fake"').replace(
            '# dir = "/var/cache/ttsrelay"', f'dir = "{tmp_path / "audio"}"'
        )
    )
    monkeypatch.setenv("TTSRELAY_CONFIG", str(config_path))
    return gateway


class TestModuleExecution:
    """Run the CLI as a subprocess."""

    def test_cli_shows_help(self) -> None:
        result = run_module("--help")

        assert result.returncode == 0
        assert "Caching text-to-speech relay" in result.stdout
        assert "serve" in result.stdout
        assert "speak" in result.stdout

    def test_list_voices_needs_no_config(self, tmp_path) -> None:
        result = run_module(
            "speak",
            "--list-voices",
            env={"TTSRELAY_CONFIG": str(tmp_path / "missing.toml")},
        )

        assert result.returncode == 0
        assert "301030" in result.stdout
        assert not (tmp_path / "missing.toml").exists()

    def test_first_run_generates_config(self, tmp_path) -> None:
        config_path = tmp_path / "config.toml"
        result = run_module(
            "speak", "--cache-info", env={"TTSRELAY_CONFIG": str(config_path)}
        )

        assert result.returncode == 1
        assert "No config found" in result.stderr
        assert config_path.exists()


class TestSpeakCommand:
    """Run the speak command in-process against a fake gateway."""

    def test_speak_writes_audio_then_hits_cache(self, fake_provider, tmp_path) -> None:
        out1 = tmp_path / "out1.wav"
        out2 = tmp_path / "out2.wav"

        first = runner.invoke(app, ["speak", "你好", "-o", str(out1)])
        second = runner.invoke(app, ["speak", "你好", "-o", str(out2)])

        assert first.exit_code == 0, first.output
        assert "(upstream)" in first.output
        assert second.exit_code == 0, second.output
        assert "(cache)" in second.output
        assert out1.read_bytes() == FAKE_AUDIO
        assert out2.read_bytes() == FAKE_AUDIO
        assert fake_provider.call_count == 1

    def test_speak_passes_parameters(self, fake_provider, tmp_path) -> None:
        result = runner.invoke(
            app,
            [
                "speak", "hello", "-o", str(tmp_path / "out.mp3"),
                "-v", "101019", "-r", "8000", "-c", "mp3", "-e", "sad",
            ],
        )

        assert result.exit_code == 0, result.output
        params = fake_provider.calls[0]
        assert (params.voice_id, params.sample_rate) == (101019, 8000)
        assert params.codec.value == "mp3"
        assert params.emotion == "sad"

    def test_speak_reads_text_from_file(self, fake_provider, tmp_path) -> None:
        text_file = tmp_path / "input.txt"
        text_file.write_text("from a file\n")

        result = runner.invoke(
            app, ["speak", "-f", str(text_file), "-o", str(tmp_path / "out.wav")]
        )

        assert result.exit_code == 0, result.output
        assert fake_provider.calls[0].text == "from a file"

    def test_speak_reads_text_from_stdin(self, fake_provider, tmp_path) -> None:
        result = runner.invoke(
            app, ["speak", "-o", str(tmp_path / "out.wav")], input="piped text\n"
        )

        assert result.exit_code == 0, result.output
        assert fake_provider.calls[0].text == "piped text"

    def test_no_cache_always_calls_upstream(self, fake_provider, tmp_path) -> None:
        for _ in range(2):
            result = runner.invoke(
                app, ["speak", "hello", "--no-cache", "-o", str(tmp_path / "out.wav")]
            )
            assert result.exit_code == 0, result.output

        assert fake_provider.call_count == 2
        assert not (tmp_path / "audio").exists() or not any(
            (tmp_path / "audio").iterdir()
        )

    def test_invalid_voice_fails(self, fake_provider, tmp_path) -> None:
        result = runner.invoke(
            app, ["speak", "hello", "-v", "1", "-o", str(tmp_path / "out.wav")]
        )

        assert result.exit_code == 1
        assert "Unsupported voice_id" in result.output
        assert fake_provider.call_count == 0

    def test_missing_output_fails(self, fake_provider) -> None:
        result = runner.invoke(app, ["speak", "hello"])

        assert result.exit_code == 1
        assert "--output is required" in result.output

    def test_upstream_failure_fails(self, fake_provider, tmp_path) -> None:
        from ttsrelay.tts.errors import UpstreamError

        fake_provider.error = UpstreamError("quota exhausted")
        result = runner.invoke(
            app, ["speak", "hello", "-o", str(tmp_path / "out.wav")]
        )

        assert result.exit_code == 1
        assert "quota exhausted" in result.output
        assert not (tmp_path / "out.wav").exists()

    def test_cache_info_and_clear(self, fake_provider, tmp_path) -> None:
        runner.invoke(app, ["speak", "one", "-o", str(tmp_path / "1.wav")])
        runner.invoke(app, ["speak", "two", "-o", str(tmp_path / "2.wav")])

        info = runner.invoke(app, ["speak", "--cache-info"])
        cleared = runner.invoke(app, ["speak", "--clear-cache"])
        after = runner.invoke(app, ["speak", "--cache-info"])

        assert "Entries: 2" in info.output
        assert "Removed 2 cached entries" in cleared.output
        assert "Entries: 0" in after.output
