"""Application layer."""

from .event_publisher import EventPublisher, NullEventPublisher
from .mastering_service import AnalyzeTrack, ExportTrack, MasterAndExport, MasteringOutcome, MasterTrack, TrackReport

__all__ = [
    "EventPublisher",
    "NullEventPublisher",
    "AnalyzeTrack",
    "MasterTrack",
    "ExportTrack",
    "MasterAndExport",
    "MasteringOutcome",
    "TrackReport",
]
