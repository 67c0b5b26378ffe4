"""Sink for the domain events raised by the mastering use cases.

The CLI and API wire in the logging publisher; library callers that pass
nothing get :class:`NullEventPublisher`.
"""

from __future__ import annotations

from typing import Protocol

from masterforge.domain.events import DomainEvent


class EventPublisher(Protocol):
    def publish(self, event: DomainEvent) -> None: ...


class NullEventPublisher:
    """Discards every event."""

    def publish(self, event: DomainEvent) -> None:
        del event
