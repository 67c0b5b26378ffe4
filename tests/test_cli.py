from __future__ import annotations

import json
import runpy
from pathlib import Path

import pytest
from typer.testing import CliRunner

from masterforge import cli
from masterforge.encoding import encode_wav
from masterforge.interfaces import cli_handlers
from masterforge.mastering_options import ExportFormat, Platform

runner = CliRunner()


@pytest.fixture
def tone_path(tmp_path: Path, make_sine) -> Path:
    path = tmp_path / "tone.wav"
    path.write_bytes(encode_wav(make_sine(440.0, 0.1, seconds=1.0, sample_rate=44_100, channels=2), 16))
    return path


def test_platforms_lists_every_target() -> None:
    result = runner.invoke(cli.app, ["platforms"])

    assert result.exit_code == 0
    for platform in Platform:
        assert platform.value in result.stdout
    assert "-16.0 LUFS" in result.stdout


def test_analyze_prints_json_report(tone_path: Path) -> None:
    result = runner.invoke(cli.app, ["analyze", str(tone_path), "--platform", "APPLE", "--json"])

    assert result.exit_code == 0
    report = json.loads(result.stdout)
    assert report["platform"] == "apple"
    assert report["sample_rate_hz"] == 44_100
    assert report["channel_count"] == 2
    assert report["integrated_lufs"] < -20.0
    assert report["gap_lu"] > 0.0


def test_analyze_prints_human_summary(tone_path: Path) -> None:
    result = runner.invoke(cli.app, ["analyze", str(tone_path)])

    assert result.exit_code == 0
    assert "Integrated loudness:" in result.stdout
    assert "Target (Spotify): -14.0 LUFS" in result.stdout


def test_analyze_reports_decode_failure(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["analyze", str(tmp_path / "missing.wav")])

    assert result.exit_code == 1
    assert "decode_failed" in result.output


def test_master_writes_export_into_directory(tone_path: Path, tmp_path: Path) -> None:
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    result = runner.invoke(
        cli.app,
        ["master", str(tone_path), "--output", str(out_dir), "--format", "wav16", "--platform", "spotify"],
    )

    assert result.exit_code == 0, result.output
    written = out_dir / "tone_mastered_16bit_44.1k.wav"
    assert written.read_bytes()[:4] == b"RIFF"
    assert "Mastered audio written to:" in result.stdout


def test_master_forwards_options_to_handler(monkeypatch, tmp_path: Path) -> None:
    captured = {}

    def fake_master_path(source, output, **kwargs):
        captured.update(kwargs, source=source, output=output)
        outcome = type(
            "Outcome",
            (),
            {
                "source": type("M", (), {"integrated_lufs": -20.0})(),
                "mastered": type("M", (), {"integrated_lufs": -14.0, "true_peak_dbtp": -1.0})(),
            },
        )()
        return output, outcome

    monkeypatch.setattr(cli, "master_path", fake_master_path)

    result = runner.invoke(
        cli.app,
        [
            "master",
            "in.wav",
            "-o",
            "out.mp3",
            "--format",
            "MP3",
            "--sample-rate",
            "48000",
            "--multiband",
            "--config",
            "params.yaml",
        ],
    )

    assert result.exit_code == 0, result.output
    assert captured["source"] == Path("in.wav")
    assert captured["output"] == Path("out.mp3")
    assert captured["export_format"] is ExportFormat.MP3
    assert captured["sample_rate_hz"] == 48_000
    assert captured["multiband"] is True
    assert captured["config"] == Path("params.yaml")
    assert captured["platform"] is None
    assert "-20.0 -> -14.0 LUFS" in result.stdout


def test_master_reports_invalid_config(tone_path: Path, tmp_path: Path) -> None:
    config = tmp_path / "params.json"
    config.write_text(json.dumps({"limiter_ceiling_dbtp": 0.0}))

    result = runner.invoke(
        cli.app, ["master", str(tone_path), "-o", str(tmp_path / "x.wav"), "--config", str(config)]
    )

    assert result.exit_code == 1
    assert "invalid_parameter" in result.output


def test_resolve_output_path_uses_export_name_for_directories(tmp_path: Path) -> None:
    assert cli_handlers.resolve_output_path(tmp_path, "a.wav") == tmp_path / "a.wav"
    assert cli_handlers.resolve_output_path(tmp_path / "b.wav", "a.wav") == tmp_path / "b.wav"


def test_module_entrypoint_runs_cli(monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.argv", ["masterforge", "platforms"])

    with pytest.raises(SystemExit) as excinfo:
        runpy.run_module("masterforge", run_name="__main__")

    assert excinfo.value.code == 0
    assert "spotify" in capsys.readouterr().out
