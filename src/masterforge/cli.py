"""CLI interface for MasterForge."""

import json
from pathlib import Path
from uuid import uuid4

import typer

from .audio_contract import DEFAULT_EXPORT_SAMPLE_RATE_HZ
from .errors import MasteringEngineError
from .interfaces.cli_handlers import analyze_path, list_platforms, master_path
from .mastering_options import ExportFormat, Platform

app = typer.Typer(help="MasterForge loudness analysis and mastering")


def _fail(error: MasteringEngineError, correlation_id: str) -> None:
    typer.echo(f"Error [{error.code}]: {error.message}", err=True)
    typer.echo(f"Correlation ID: {correlation_id}", err=True)
    raise typer.Exit(code=1)


@app.command("analyze")
def analyze_command(
    input_path: Path = typer.Argument(..., help="Audio file to measure"),
    platform: Platform | None = typer.Option(
        None,
        "--platform",
        "-p",
        case_sensitive=False,
        help="Platform whose loudness target the gap is computed against.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Measure integrated loudness, true peak and loudness range."""

    correlation_id = str(uuid4())
    try:
        report = analyze_path(input_path, platform, correlation_id=correlation_id)
    except MasteringEngineError as error:
        _fail(error, correlation_id)
        return

    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return

    m = report.measurement
    typer.echo(f"Integrated loudness: {m.integrated_lufs:.1f} LUFS")
    typer.echo(f"True peak:           {m.true_peak_dbtp:.1f} dBTP")
    typer.echo(f"Loudness range:      {m.loudness_range_lu:.1f} LU")
    typer.echo(f"Duration:            {m.duration_seconds:.1f} s")
    typer.echo(
        f"Target ({report.target.label}): {report.target.target_lufs:.1f} LUFS, "
        f"gap {report.gap_lu:+.1f} LU"
    )


@app.command("master")
def master_command(
    input_path: Path = typer.Argument(..., help="Audio file to master"),
    output: Path = typer.Option(
        ..., "--output", "-o", help="Output file, or a directory for the default filename"
    ),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="JSON or YAML mastering parameters."
    ),
    platform: Platform | None = typer.Option(
        None,
        "--platform",
        "-p",
        case_sensitive=False,
        help="Tune ceiling and intensity for a platform loudness target.",
    ),
    export_format: ExportFormat = typer.Option(
        ExportFormat.WAV24,
        "--format",
        "-f",
        case_sensitive=False,
        help="Export format: wav16, wav24 or mp3.",
    ),
    sample_rate: int = typer.Option(
        DEFAULT_EXPORT_SAMPLE_RATE_HZ, "--sample-rate", "-r", help="Export sample rate in Hz."
    ),
    multiband: bool | None = typer.Option(
        None,
        "--multiband/--single-band",
        help="Override the dynamics topology from the config.",
    ),
) -> None:
    """Render the mastering chain and export the result."""

    correlation_id = str(uuid4())
    try:
        written, outcome = master_path(
            input_path,
            output,
            correlation_id=correlation_id,
            export_format=export_format,
            sample_rate_hz=sample_rate,
            platform=platform,
            config=config,
            multiband=multiband,
        )
    except MasteringEngineError as error:
        _fail(error, correlation_id)
        return

    typer.echo(
        f"Loudness: {outcome.source.integrated_lufs:.1f} -> "
        f"{outcome.mastered.integrated_lufs:.1f} LUFS, "
        f"true peak {outcome.mastered.true_peak_dbtp:.1f} dBTP"
    )
    typer.echo(f"Mastered audio written to: {written}")
    typer.echo(f"Correlation ID: {correlation_id}")


@app.command("platforms")
def platforms_command() -> None:
    """List platform loudness targets."""

    for target in list_platforms():
        typer.echo(f"{target.platform.value:<12}{target.label:<14}{target.target_lufs:>6.1f} LUFS")


def main() -> None:
    app()


if __name__ == "__main__":
    app()
