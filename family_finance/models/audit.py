"""
Audit Models for Family Finance

Every mutation of the store and every call to the external assistant
service produces an audit event. Events are written to the structured log;
they give a complete, correlated history of what the assistant did to the
user's records.

DESIGN DECISION: Audit events are append-only and never modified.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Records
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    VALIDATION_FAILED = "validation_failed"

    # Assistant
    ASSISTANT_NOT_CONFIGURED = "assistant_not_configured"
    ASSISTANT_REPLIED = "assistant_replied"
    ASSISTANT_UNSTRUCTURED_REPLY = "assistant_unstructured_reply"
    TRANSCRIPTION_COMPLETED = "transcription_completed"

    # Export
    EXPORT_WRITTEN = "export_written"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (person, account, account_type, export)"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all records from one prompt)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered directly by the user (as opposed to the assistant)?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("person", 3, "assistant", cid)
        event = AuditEventBuilder.export_written(3, "/tmp/x.json", 2, cid)
    """

    @staticmethod
    def record_created(
        entity_type: str,
        entity_id: int,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type} {entity_id} created by {source}",
            details={"source": source},
            is_user_action=source == "form",
        )

    @staticmethod
    def record_updated(
        entity_type: str,
        entity_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type} {entity_id} updated",
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: int,
        unlinked_accounts: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            severity=AuditSeverity.WARNING if unlinked_accounts else AuditSeverity.INFO,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type} {entity_id} deleted",
            details={"linked_accounts": unlinked_accounts},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        form: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=form,
            correlation_id=correlation_id,
            description=f"{form} form rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def assistant_not_configured(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_NOT_CONFIGURED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Assistant request skipped: API key missing or placeholder",
        )

    @staticmethod
    def assistant_replied(
        records_created: int,
        model: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_REPLIED,
            correlation_id=correlation_id,
            description=f"Assistant reply applied: {records_created} record(s) created",
            details={"records_created": records_created, "model": model},
        )

    @staticmethod
    def assistant_unstructured_reply(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_UNSTRUCTURED_REPLY,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Assistant reply was not structured; shown as plain text",
            details={"reason": reason},
        )

    @staticmethod
    def transcription_completed(
        characters: int,
        cancelled: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSCRIPTION_COMPLETED,
            correlation_id=correlation_id,
            description="Voice input stopped by user" if cancelled else "Voice input completed",
            details={"characters": characters, "cancelled": cancelled},
            is_user_action=True,
        )

    @staticmethod
    def export_written(
        person_id: int,
        path: str,
        account_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_WRITTEN,
            entity_type="person",
            entity_id=person_id,
            correlation_id=correlation_id,
            description=f"Migration file written for person {person_id}",
            details={"path": path, "account_count": account_count},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
