"""
Main Orchestrator for Family Finance

This module ties together all the components and defines the
end-to-end flows for:
1. Records (form input -> validate -> save; deletes with warnings)
2. Assistant (text or voice -> completion service -> records)
3. Export (person -> snapshot -> migration file)

DESIGN DECISION: The flows are the caller layer. They turn failures into
user-facing messages where the lower layers deliberately raise:
- AssistantNetworkError -> "Network error: ..."
- Any export failure    -> "Export failed: ..."

The store handle is created once in create_app_components and passed to
every component; nothing reaches for a global connection.
"""

import asyncio
from collections.abc import AsyncIterable, Callable
from pathlib import Path
from typing import NamedTuple, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from family_finance.agents import (
    AssistantNetworkError,
    FinanceAssistant,
    ListenResult,
    VoiceInput,
)
from family_finance.audit import AuditLogger, create_correlation_id
from family_finance.config import Settings, get_settings
from family_finance.models.audit import AuditEventBuilder
from family_finance.models.records import (
    UNASSIGNED_ID,
    Account,
    AccountForm,
    AccountType,
    AccountTypeForm,
    ChatMessage,
    Person,
    PersonForm,
    ValidationResult,
)
from family_finance.queries import LedgerQueries
from family_finance.services.export import MigrationExporter
from family_finance.services.storage import (
    DatabaseClient,
    FinanceStorageInterface,
    NotFoundError,
    SqlFinanceStorage,
)
from family_finance.validation import RecordValidator, parse_amount


logger = structlog.get_logger(__name__)


class RecordFlow:
    """
    Orchestrates form saves and deletes.

    Invalid forms never reach the store; the ValidationResult carries the
    message to show instead.
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or RecordValidator()
        self._audit_logger = audit_logger

    async def _rejected(self, result: ValidationResult) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                form=result.form,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
            )

    async def _saved(self, entity_type: str, entity_id: int, is_new: bool) -> None:
        if not self._audit_logger:
            return
        if is_new:
            await self._audit_logger.log_record_created(entity_type, entity_id, source="form")
        else:
            await self._audit_logger.log_record_updated(entity_type, entity_id)

    async def save_account_form(
        self,
        form: AccountForm,
    ) -> tuple[Optional[Account], ValidationResult]:
        """
        Validate and save the account form.

        Returns:
            (saved_account or None, validation_result)
        """
        result = self._validator.validate_account(form)
        if not result.is_valid:
            await self._rejected(result)
            return None, result

        fields = dict(
            title=form.title.strip(),
            amount=parse_amount(form.amount_text),
            is_credit=form.is_credit,
            notes=form.notes,
            person_id=form.person_id,
            account_type_id=form.account_type_id,
        )
        if form.editing is None:
            # New accounts get created_at from the model default
            account = Account(**fields)
        else:
            account = form.editing.model_copy(update=fields)

        is_new = account.id == UNASSIGNED_ID
        await self._storage.save_account(account)
        await self._saved("account", account.id, is_new)
        return account, result

    async def save_person_form(
        self,
        form: PersonForm,
    ) -> tuple[Optional[Person], ValidationResult]:
        result = self._validator.validate_person(form)
        if not result.is_valid:
            await self._rejected(result)
            return None, result

        fields = dict(
            name=form.name.strip(),
            phone=form.phone,
            email=form.email,
            photo_base64=form.photo_base64,
        )
        person = (
            Person(**fields) if form.editing is None
            else form.editing.model_copy(update=fields)
        )

        is_new = person.id == UNASSIGNED_ID
        await self._storage.save_person(person)
        await self._saved("person", person.id, is_new)
        return person, result

    async def save_account_type_form(
        self,
        form: AccountTypeForm,
    ) -> tuple[Optional[AccountType], ValidationResult]:
        result = self._validator.validate_account_type(form)
        if not result.is_valid:
            await self._rejected(result)
            return None, result

        fields = dict(name=form.name.strip(), description=form.description)
        account_type = (
            AccountType(**fields) if form.editing is None
            else form.editing.model_copy(update=fields)
        )

        is_new = account_type.id == UNASSIGNED_ID
        await self._storage.save_account_type(account_type)
        await self._saved("account_type", account_type.id, is_new)
        return account_type, result

    # ---- Deletes ----

    @staticmethod
    def person_delete_warning(person: Person) -> str:
        return (
            f"Are you sure you want to delete {person.name}? "
            "Linked accounts will have their person cleared."
        )

    async def account_type_delete_warning(self, account_type: AccountType) -> Optional[str]:
        """
        The confirmation to show before deleting an account type.

        Returns None when no account references the type.
        """
        linked = await self._storage.count_accounts_by_type(account_type.id)
        if linked == 0:
            return None
        return (
            f"This account type has {linked} linked account(s). "
            "Are you sure you want to delete it?"
        )

    async def delete_person(self, person: Person) -> int:
        """Delete a person; returns how many accounts were unlinked."""
        unlinked = await self._storage.delete_person(person)
        if self._audit_logger:
            await self._audit_logger.log_record_deleted("person", person.id, unlinked)
        return unlinked

    async def delete_account_type(self, account_type: AccountType) -> bool:
        linked = await self._storage.count_accounts_by_type(account_type.id)
        deleted = await self._storage.delete_account_type(account_type)
        if self._audit_logger:
            await self._audit_logger.log_record_deleted("account_type", account_type.id, linked)
        return deleted

    async def delete_account(self, account: Account) -> bool:
        deleted = await self._storage.delete_account(account)
        if self._audit_logger:
            await self._audit_logger.log_record_deleted("account", account.id)
        return deleted


class AssistantSession:
    """
    One conversation with the assistant.

    Keeps the chat transcript and refuses overlapping requests: the store's
    find-or-create resolution assumes one prompt at a time.
    """

    def __init__(
        self,
        assistant: FinanceAssistant,
        voice: Optional[VoiceInput] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._assistant = assistant
        self._voice = voice or VoiceInput()
        self._audit_logger = audit_logger
        self.messages: list[ChatMessage] = []
        self.is_processing = False

    @staticmethod
    def format_reply(message: str, records_created: int) -> str:
        if records_created > 0:
            return f"{message}\n\n({records_created} record(s) created)"
        return message

    async def send(self, text: str) -> Optional[ChatMessage]:
        """
        Send user text to the assistant.

        Returns:
            The assistant's chat message, or None when the input was blank
            or another request is still running
        """
        if not text or not text.strip() or self.is_processing:
            return None

        prompt = text.strip()
        self.messages.append(ChatMessage(content=prompt, is_user=True))
        correlation_id = create_correlation_id()
        self.is_processing = True

        try:
            reply = await self._assistant.process_prompt(prompt, correlation_id=correlation_id)
            content = self.format_reply(reply.message, reply.records_created)
        except AssistantNetworkError as e:
            logger.warning("assistant_network_error", error=str(e))
            content = f"Network error: {e}"
        except Exception as e:
            logger.error("assistant_failed", error=str(e), exc_info=True)
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            content = f"Error: {e}"
        finally:
            self.is_processing = False

        answer = ChatMessage(content=content, is_user=False)
        self.messages.append(answer)
        return answer

    async def listen_and_send(
        self,
        partials: AsyncIterable[str],
        stop: asyncio.Event,
        on_partial: Optional[Callable[[str], None]] = None,
    ) -> ListenResult:
        """
        Listen to voice input and send whatever was captured.

        A user stop still sends the partial transcript, as long as it is
        not blank.
        """
        if self.is_processing:
            return ListenResult()

        correlation_id = create_correlation_id()
        try:
            result = await self._voice.listen(partials, stop, on_partial)
        except Exception as e:
            logger.error("speech_recognition_failed", error=str(e))
            self.messages.append(ChatMessage(
                content=f"Speech recognition failed: {e}",
                is_user=False,
            ))
            return ListenResult()

        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.transcription_completed(
                characters=len(result.text),
                cancelled=result.cancelled,
                correlation_id=correlation_id,
            ))

        if result.has_text:
            await self.send(result.text)
        return result


class ExportOutcome(BaseModel):
    """Result of an export request, ready to show."""

    success: bool
    message: str
    paths: list[Path] = Field(default_factory=list)


class ExportFlow:
    """
    Orchestrates migration exports and reports their outcome.

    Every failure becomes an "Export failed: ..." outcome; a missing person
    is expected, anything else is also audited as a system error.
    """

    def __init__(
        self,
        exporter: MigrationExporter,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._exporter = exporter
        self._audit_logger = audit_logger

    async def _failed(self, error: Exception, correlation_id: UUID) -> ExportOutcome:
        logger.error("export_failed", error=str(error), exc_info=True)
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        return ExportOutcome(success=False, message=f"Export failed: {error}")

    async def export_person(self, person_id: int) -> ExportOutcome:
        correlation_id = create_correlation_id()
        try:
            path = await self._exporter.export_person(person_id, correlation_id)
        except NotFoundError as e:
            logger.warning("export_person_missing", person_id=person_id)
            return ExportOutcome(success=False, message=f"Export failed: {e}")
        except Exception as e:
            return await self._failed(e, correlation_id)
        return ExportOutcome(success=True, message=f"Exported: {path.name}", paths=[path])

    async def export_all(self) -> ExportOutcome:
        correlation_id = create_correlation_id()
        try:
            paths = await self._exporter.export_all(correlation_id)
        except Exception as e:
            return await self._failed(e, correlation_id)
        if not paths:
            return ExportOutcome(success=False, message="No people to export.")
        return ExportOutcome(
            success=True,
            message=f"{len(paths)} file(s) generated successfully!",
            paths=paths,
        )


class AppComponents(NamedTuple):
    storage: FinanceStorageInterface
    records: RecordFlow
    ledger: LedgerQueries
    assistant: AssistantSession
    export: ExportFlow
    audit_logger: AuditLogger


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[FinanceStorageInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; defaults to get_settings()
        storage: Pre-built store (tests pass one bound to a temp file)

    Returns:
        AppComponents sharing one store handle and one audit logger
    """
    settings = settings or get_settings()
    audit_logger = AuditLogger()

    if storage is None:
        storage = SqlFinanceStorage(DatabaseClient(settings.storage))

    assistant = FinanceAssistant(
        storage,
        settings=settings.openai,
        audit_logger=audit_logger,
    )
    exporter = MigrationExporter(
        storage,
        settings=settings.export,
        audit_logger=audit_logger,
    )

    return AppComponents(
        storage=storage,
        records=RecordFlow(storage, audit_logger=audit_logger),
        ledger=LedgerQueries(storage),
        assistant=AssistantSession(assistant, audit_logger=audit_logger),
        export=ExportFlow(exporter, audit_logger=audit_logger),
        audit_logger=audit_logger,
    )
