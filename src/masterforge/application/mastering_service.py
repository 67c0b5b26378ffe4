"""Application services orchestrating analysis, mastering and export use-cases."""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4

from masterforge.analysis import LoudnessMeasurement, MeterReadings, gap_to_target, measure_loudness, meter_readings
from masterforge.audio_contract import ensure_supported_export_rate
from masterforge.application.event_publisher import EventPublisher, NullEventPublisher
from masterforge.buffer import PcmBuffer
from masterforge.domain.events import AnalysisCompleted, ExportEncoded, MasteringRendered, ProcessingFailed
from masterforge.encoding import ExportRequest, ExportResult, export_buffer
from masterforge.errors import MasteringEngineError, NothingToProcessError
from masterforge.mastering_options import Platform
from masterforge.parameters import MasteringParameters
from masterforge.platforms import PlatformTarget, apply_platform_target, resolve_platform
from masterforge.processing import RenderGuard, build_signal_chain, render_mastering


@dataclass(frozen=True, slots=True)
class TrackReport:
    """Measurement of one buffer plus the derived meters and platform gap."""

    measurement: LoudnessMeasurement
    meters: MeterReadings
    target: PlatformTarget
    gap_lu: float

    def to_dict(self) -> dict:
        m = self.measurement
        return {
            "integrated_lufs": m.integrated_lufs,
            "true_peak_dbtp": m.true_peak_dbtp,
            "loudness_range_lu": m.loudness_range_lu,
            "duration_seconds": m.duration_seconds,
            "sample_rate_hz": m.sample_rate_hz,
            "channel_count": m.channel_count,
            "meters": {
                "loudness": round(self.meters.loudness, 1),
                "dynamics": round(self.meters.dynamics, 1),
                "stereo": round(self.meters.stereo, 1),
                "clarity": round(self.meters.clarity, 1),
            },
            "platform": self.target.platform.value,
            "target_lufs": self.target.target_lufs,
            "gap_lu": self.gap_lu,
        }


@dataclass(frozen=True, slots=True)
class MasteringOutcome:
    """Everything one master-and-export run produced."""

    source: LoudnessMeasurement
    mastered: LoudnessMeasurement
    parameters: MasteringParameters
    export: ExportResult


def _publish_failure(
    publisher: EventPublisher, correlation_id: str, stage: str, error: MasteringEngineError
) -> None:
    publisher.publish(
        ProcessingFailed(
            correlation_id=correlation_id,
            payload_summary={"stage": stage, "code": error.code, "error": error.message},
        )
    )


@dataclass(slots=True)
class AnalyzeTrack:
    """Use case that measures a buffer against a platform target."""

    event_publisher: EventPublisher = field(default_factory=NullEventPublisher)

    def run(
        self,
        buffer: PcmBuffer | None,
        platform: Platform | str | None = None,
        correlation_id: str | None = None,
    ) -> TrackReport:
        run_correlation_id = correlation_id or str(uuid4())
        if buffer is None:
            error = NothingToProcessError()
            _publish_failure(self.event_publisher, run_correlation_id, "analysis", error)
            raise error

        target = resolve_platform(platform)
        measurement = measure_loudness(buffer)
        report = TrackReport(
            measurement=measurement,
            meters=meter_readings(buffer, measurement),
            target=target,
            gap_lu=gap_to_target(measurement, target),
        )
        self.event_publisher.publish(
            AnalysisCompleted(
                correlation_id=run_correlation_id,
                payload_summary={
                    "integrated_lufs": measurement.integrated_lufs,
                    "true_peak_dbtp": measurement.true_peak_dbtp,
                    "loudness_range_lu": measurement.loudness_range_lu,
                    "platform": target.platform.value,
                    "gap_lu": report.gap_lu,
                },
            )
        )
        return report


@dataclass(slots=True)
class MasterTrack:
    """Use case that renders a buffer through the mastering chain."""

    event_publisher: EventPublisher = field(default_factory=NullEventPublisher)
    guard: RenderGuard = field(default_factory=RenderGuard)

    def render(
        self,
        buffer: PcmBuffer | None,
        parameters: MasteringParameters,
        correlation_id: str | None = None,
    ) -> PcmBuffer:
        run_correlation_id = correlation_id or str(uuid4())
        try:
            rendered = render_mastering(buffer, parameters, guard=self.guard)
        except MasteringEngineError as error:
            _publish_failure(self.event_publisher, run_correlation_id, "render", error)
            raise

        chain = build_signal_chain(parameters)
        self.event_publisher.publish(
            MasteringRendered(
                correlation_id=run_correlation_id,
                payload_summary={
                    "sample_rate": rendered.sample_rate,
                    "channel_count": rendered.channel_count,
                    "frame_count": rendered.frame_count,
                    "dynamics_mode": chain.dynamics_mode.value,
                    "limiter_ceiling_dbtp": chain.limiter.ceiling_db,
                    "makeup_gain_db": round(chain.makeup.gain_db, 2),
                },
            )
        )
        return rendered


@dataclass(slots=True)
class ExportTrack:
    """Use case that resamples and encodes a rendered buffer."""

    event_publisher: EventPublisher = field(default_factory=NullEventPublisher)

    def export(
        self,
        buffer: PcmBuffer | None,
        request: ExportRequest,
        correlation_id: str | None = None,
    ) -> ExportResult:
        run_correlation_id = correlation_id or str(uuid4())
        try:
            result = export_buffer(buffer, request)
        except MasteringEngineError as error:
            _publish_failure(self.event_publisher, run_correlation_id, "export", error)
            raise

        self.event_publisher.publish(
            ExportEncoded(
                correlation_id=run_correlation_id,
                payload_summary={
                    "format": result.export_format.value,
                    "sample_rate_hz": result.sample_rate_hz,
                    "filename": result.filename,
                    "byte_count": len(result.payload),
                },
            )
        )
        return result


@dataclass(slots=True)
class MasterAndExport:
    """Use case covering analyze -> render -> analyze -> export for one buffer."""

    event_publisher: EventPublisher = field(default_factory=NullEventPublisher)
    guard: RenderGuard = field(default_factory=RenderGuard)

    def run(
        self,
        buffer: PcmBuffer | None,
        parameters: MasteringParameters,
        request: ExportRequest,
        platform: Platform | str | None = None,
        correlation_id: str | None = None,
    ) -> MasteringOutcome:
        run_correlation_id = correlation_id or str(uuid4())
        try:
            ensure_supported_export_rate(request.export_format, request.sample_rate_hz)
        except MasteringEngineError as error:
            _publish_failure(self.event_publisher, run_correlation_id, "export", error)
            raise
        if platform is not None:
            parameters = apply_platform_target(parameters, platform)

        analyzer = AnalyzeTrack(event_publisher=self.event_publisher)
        source = analyzer.run(buffer, platform, correlation_id=run_correlation_id)
        rendered = MasterTrack(event_publisher=self.event_publisher, guard=self.guard).render(
            buffer, parameters, correlation_id=run_correlation_id
        )
        mastered = analyzer.run(rendered, platform, correlation_id=run_correlation_id)
        result = ExportTrack(event_publisher=self.event_publisher).export(
            rendered, request, correlation_id=run_correlation_id
        )
        return MasteringOutcome(
            source=source.measurement,
            mastered=mastered.measurement,
            parameters=parameters.clamped(),
            export=result,
        )
