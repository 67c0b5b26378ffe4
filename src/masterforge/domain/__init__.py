"""Domain layer: events shared by the application services."""

from .events import AnalysisCompleted, DomainEvent, ExportEncoded, MasteringRendered, ProcessingFailed

__all__ = [
    "DomainEvent",
    "AnalysisCompleted",
    "MasteringRendered",
    "ExportEncoded",
    "ProcessingFailed",
]
