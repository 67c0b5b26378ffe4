"""Domain event contracts for analysis, mastering and export workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """Base domain event emitted by application services."""

    correlation_id: str
    payload_summary: dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True, slots=True)
class AnalysisCompleted(DomainEvent):
    """A buffer was measured for loudness, true peak and LRA."""


@dataclass(frozen=True, slots=True)
class MasteringRendered(DomainEvent):
    """A buffer was rendered through the mastering chain."""


@dataclass(frozen=True, slots=True)
class ExportEncoded(DomainEvent):
    """A rendered buffer was resampled and encoded to a distributable format."""


@dataclass(frozen=True, slots=True)
class ProcessingFailed(DomainEvent):
    """A use case aborted with an engine error."""
