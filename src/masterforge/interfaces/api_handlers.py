"""API-facing handlers that delegate to application services."""

from __future__ import annotations

from masterforge.application.mastering_service import AnalyzeTrack, MasterAndExport, MasteringOutcome, TrackReport
from masterforge.encoding import ExportRequest
from masterforge.infrastructure.logging_event_publisher import LoggingEventPublisher
from masterforge.infrastructure.pedalboard_codec import decode_audio_bytes
from masterforge.mastering_options import ExportFormat, Platform
from masterforge.parameters import MasteringParameters

_event_publisher = LoggingEventPublisher()
analyze_track = AnalyzeTrack(event_publisher=_event_publisher)
master_and_export = MasterAndExport(event_publisher=_event_publisher)


def analyze_uploaded_bytes(payload: bytes, platform: Platform, correlation_id: str) -> TrackReport:
    buffer = decode_audio_bytes(payload)
    return analyze_track.run(buffer, platform, correlation_id=correlation_id)


def master_uploaded_bytes(
    payload: bytes,
    parameters: MasteringParameters,
    export_format: ExportFormat,
    sample_rate_hz: int,
    basename: str,
    platform: Platform | None,
    correlation_id: str,
) -> MasteringOutcome:
    buffer = decode_audio_bytes(payload)
    request = ExportRequest.from_raw(export_format, sample_rate_hz, basename=basename)
    return master_and_export.run(
        buffer, parameters, request, platform=platform, correlation_id=correlation_id
    )


__all__ = ["analyze_uploaded_bytes", "master_uploaded_bytes"]
