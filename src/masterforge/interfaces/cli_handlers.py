"""CLI-facing handlers that delegate to application services."""

from __future__ import annotations

from pathlib import Path

from masterforge.application.mastering_service import AnalyzeTrack, MasterAndExport, MasteringOutcome, TrackReport
from masterforge.encoding import ExportRequest
from masterforge.infrastructure.logging_event_publisher import LoggingEventPublisher
from masterforge.infrastructure.pedalboard_codec import load_audio_file
from masterforge.mastering_options import ExportFormat, Platform
from masterforge.parameters import MasteringParameters
from masterforge.platforms import PLATFORM_TARGETS, PlatformTarget
from masterforge.utils.config import default_platform, load_mastering_parameters

_event_publisher = LoggingEventPublisher()
analyze_track = AnalyzeTrack(event_publisher=_event_publisher)
master_and_export = MasterAndExport(event_publisher=_event_publisher)


def analyze_path(path: Path, platform: Platform | None, correlation_id: str) -> TrackReport:
    buffer = load_audio_file(path)
    return analyze_track.run(buffer, platform or default_platform(), correlation_id=correlation_id)


def resolve_output_path(output: Path, filename: str) -> Path:
    """Directories receive the export's canonical filename."""

    if output.is_dir():
        return output / filename
    return output


def master_path(
    source: Path,
    output: Path,
    correlation_id: str,
    export_format: ExportFormat,
    sample_rate_hz: int,
    platform: Platform | None = None,
    config: Path | None = None,
    multiband: bool | None = None,
) -> tuple[Path, MasteringOutcome]:
    parameters = load_mastering_parameters(config) if config is not None else MasteringParameters()
    if multiband is not None:
        parameters = parameters.with_overrides(multiband_enabled=multiband)

    buffer = load_audio_file(source)
    request = ExportRequest.from_raw(export_format, sample_rate_hz, basename=source.stem)
    outcome = master_and_export.run(
        buffer, parameters, request, platform=platform, correlation_id=correlation_id
    )

    destination = resolve_output_path(output, outcome.export.filename)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(outcome.export.payload)
    return destination, outcome


def list_platforms() -> list[PlatformTarget]:
    return list(PLATFORM_TARGETS.values())
