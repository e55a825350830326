"""Audit trail sink. Fire-and-forget: a failing sink never fails the caller."""

import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("equimarket.audit")


@dataclass(frozen=True)
class AuditEvent:
    action: str  # e.g. subscription_purchase, listing_boost, add_spotlight
    user_id: uuid.UUID | None
    entity_type: str
    entity_id: uuid.UUID | None
    description: str
    details: dict[str, Any] = field(default_factory=dict)


class AuditSink(Protocol):
    def record(self, event: AuditEvent) -> None: ...


class LoggingAuditSink:
    """Writes audit events to the ``equimarket.audit`` logger."""

    def record(self, event: AuditEvent) -> None:
        audit_logger.info(
            "%s %s=%s user=%s: %s",
            event.action,
            event.entity_type,
            event.entity_id,
            event.user_id,
            event.description,
            extra={"audit": asdict(event)},
        )


def record_event(sink: AuditSink, event: AuditEvent) -> None:
    try:
        sink.record(event)
    except Exception:
        logger.exception("Audit sink failed to record %s for %s", event.action, event.entity_id)
