"""
Action Interpreter

Turns the completion service's text answer into store mutations.

FLOW:
1. Strip a Markdown code fence if the model wrapped its JSON in one
2. Decode into the closed AiResponse schema, or fall back to plain text
3. Apply each recognized action, resolving people and account types by name
4. Report the message and how many actions were applied

BOUNDARIES:
- A malformed answer is NEVER an error: the raw text becomes the message
- Unknown action types are skipped and not counted
- Store failures while applying actions propagate to the caller
- Find-or-create is not race-safe; callers run one prompt at a time
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from family_finance.audit import AuditLogger
from family_finance.models.actions import (
    AiResponse,
    AssistantReply,
    CreateAccountAction,
    CreateAccountTypeAction,
    CreatePersonAction,
    PlainTextResponse,
)
from family_finance.models.audit import AuditEventBuilder
from family_finance.models.records import Account, AccountType, Person
from family_finance.services.storage import FinanceStorageInterface


logger = structlog.get_logger(__name__)

CODE_FENCE = "```"
DEFAULT_MESSAGE = "Done!"
UNPROCESSABLE_MESSAGE = "I couldn't process the response. Please try again."
DEFAULT_TITLE = "Untitled"
DEFAULT_NAME = "Unknown"


def strip_code_fence(text: str) -> str:
    """
    Remove a surrounding ```lang ... ``` block.

    The first line (the opening fence and its language tag) is dropped,
    along with everything from the last closing fence onwards.
    """
    cleaned = text.strip()
    if not cleaned.startswith(CODE_FENCE):
        return cleaned

    cleaned = cleaned[cleaned.find("\n") + 1:]
    last_fence = cleaned.rfind(CODE_FENCE)
    if last_fence >= 0:
        cleaned = cleaned[:last_fence]
    return cleaned.strip()


def decode_response(raw_text: str) -> Union[AiResponse, PlainTextResponse]:
    """
    Decode an assistant answer into AiResponse or the plain-text variant.

    Never partially decodes: one bad field turns the whole answer into
    plain text.
    """
    cleaned = strip_code_fence(raw_text)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return PlainTextResponse(text=raw_text, reason=f"invalid json: {e.msg}")

    if payload is None:
        return PlainTextResponse(text=UNPROCESSABLE_MESSAGE, reason="null payload")

    try:
        return AiResponse.from_json(cleaned)
    except ValidationError as e:
        return PlainTextResponse(
            text=raw_text,
            reason=f"schema mismatch: {e.error_count()} error(s)",
        )


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class ActionInterpreter:
    """
    Applies decoded assistant actions to the store.

    Resolution of related entities:
    - personName / accountTypeName are matched case-insensitively
    - a miss creates the entity with that name and links the new id
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def apply(
        self,
        raw_text: str,
        correlation_id: Optional[UUID] = None,
    ) -> AssistantReply:
        """
        Interpret an assistant answer and apply its actions.

        Returns:
            AssistantReply with the message to show and the applied count
        """
        decoded = decode_response(raw_text)

        if isinstance(decoded, PlainTextResponse):
            logger.info("assistant_reply_unstructured", reason=decoded.reason)
            if self._audit_logger:
                await self._audit_logger.log(AuditEventBuilder.assistant_unstructured_reply(
                    reason=decoded.reason,
                    correlation_id=correlation_id,
                ))
            return AssistantReply(message=decoded.text, records_created=0)

        records_created = 0
        for action in decoded.actions or []:
            if isinstance(action, CreateAccountAction):
                await self._create_account(action, correlation_id)
            elif isinstance(action, CreatePersonAction):
                await self._create_person(action, correlation_id)
            elif isinstance(action, CreateAccountTypeAction):
                await self._create_account_type(action, correlation_id)
            else:
                logger.debug("assistant_action_skipped", action_type=action.type)
                continue
            records_created += 1

        return AssistantReply(
            message=decoded.message if decoded.message is not None else DEFAULT_MESSAGE,
            records_created=records_created,
        )

    # ---- Resolution ----

    async def resolve_person(
        self,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Person:
        """Find a person by name (any case) or create one."""
        person = await self._storage.find_person_by_name(name)
        if person is None:
            person = await self._storage.save_person(Person(name=name))
            await self._record_created("person", person.id, correlation_id)
        return person

    async def resolve_account_type(
        self,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AccountType:
        """Find an account type by name (any case) or create one."""
        account_type = await self._storage.find_account_type_by_name(name)
        if account_type is None:
            account_type = await self._storage.save_account_type(AccountType(name=name))
            await self._record_created("account_type", account_type.id, correlation_id)
        return account_type

    # ---- Action handlers ----

    async def _create_account(
        self,
        action: CreateAccountAction,
        correlation_id: Optional[UUID],
    ) -> Account:
        person_id = None
        account_type_id = None

        if not _blank(action.person_name):
            person_id = (await self.resolve_person(action.person_name, correlation_id)).id

        if not _blank(action.account_type_name):
            account_type_id = (
                await self.resolve_account_type(action.account_type_name, correlation_id)
            ).id

        # No positivity check here; only the account form enforces amount > 0
        account = Account(
            title=DEFAULT_TITLE if _blank(action.title) else action.title,
            amount=action.amount if action.amount is not None else Decimal("0"),
            is_credit=action.is_credit if action.is_credit is not None else False,
            notes=action.notes,
            person_id=person_id,
            account_type_id=account_type_id,
            created_at=datetime.now(),
        )
        await self._storage.save_account(account)
        await self._record_created("account", account.id, correlation_id)
        return account

    async def _create_person(
        self,
        action: CreatePersonAction,
        correlation_id: Optional[UUID],
    ) -> Person:
        person = Person(
            name=DEFAULT_NAME if _blank(action.name) else action.name,
            phone=action.phone,
            email=action.email,
        )
        await self._storage.save_person(person)
        await self._record_created("person", person.id, correlation_id)
        return person

    async def _create_account_type(
        self,
        action: CreateAccountTypeAction,
        correlation_id: Optional[UUID],
    ) -> AccountType:
        account_type = AccountType(
            name=DEFAULT_NAME if _blank(action.name) else action.name,
            description=action.description,
        )
        await self._storage.save_account_type(account_type)
        await self._record_created("account_type", account_type.id, correlation_id)
        return account_type

    async def _record_created(
        self,
        entity_type: str,
        entity_id: int,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_record_created(
                entity_type=entity_type,
                entity_id=entity_id,
                source="assistant",
                correlation_id=correlation_id,
            )
