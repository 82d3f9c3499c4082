"""
Audit Logger

DESIGN DECISION: Every record mutation and every assistant round trip is
logged. This provides:
1. Traceability of what the assistant created on the user's behalf
2. Debugging capability for malformed AI replies
3. A history of exports handed to the migration tool

The audit logger:
- Writes structured JSON lines through structlog
- Never raises into the calling flow
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from family_finance.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Keeps the most recent events in memory as well, so a session can show
    what just happened without re-reading the log.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("family_finance.audit")
        self._history_size = history_size
        self._recent: list[AuditEvent] = []

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Recent events, oldest first."""
        return list(self._recent)

    async def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._recent.append(event)
        if len(self._recent) > self._history_size:
            del self._recent[: len(self._recent) - self._history_size]

        log_dict = event.to_log_dict()
        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Logging must never break the flow being audited
            structlog.get_logger().error("audit_log_failed", error=str(e))

    async def log_record_created(
        self,
        entity_type: str,
        entity_id: int,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log creation of a person, account type or account."""
        await self.log(AuditEventBuilder.record_created(
            entity_type=entity_type,
            entity_id=entity_id,
            source=source,
            correlation_id=correlation_id,
        ))

    async def log_record_updated(
        self,
        entity_type: str,
        entity_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        entity_type: str,
        entity_id: int,
        unlinked_accounts: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            unlinked_accounts=unlinked_accounts,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        form: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            form=form,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one chat prompt).
    Pass it through all subsequent operations.
    """
    return uuid4()
