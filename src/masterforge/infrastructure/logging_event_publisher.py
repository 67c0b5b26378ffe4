"""Logging-backed implementation of the event publisher."""

from __future__ import annotations

import logging

from masterforge.domain.events import DomainEvent, ProcessingFailed

LOGGER = logging.getLogger("masterforge.events")


class LoggingEventPublisher:
    """Emit event payload summaries to structured logs."""

    def publish(self, event: DomainEvent) -> None:
        level = logging.WARNING if isinstance(event, ProcessingFailed) else logging.INFO
        LOGGER.log(
            level,
            "domain_event_emitted",
            extra={
                "event_name": type(event).__name__,
                "correlation_id": event.correlation_id,
                "payload_summary": event.payload_summary,
                "occurred_at": event.occurred_at.isoformat(),
            },
        )
