"""
Finance Assistant (prompt pipeline)

DESIGN DECISION: The language model is a TRANSLATOR from free text into a
small set of record-creation actions. It never writes to the store itself:
its answer is decoded and applied by the ActionInterpreter.

FLOW:
1. Check configuration (no key or a placeholder key -> guidance message,
   no network call)
2. One chat completion request: fixed system instruction + user text
3. Read the first choice's content
4. Hand it to the ActionInterpreter

FAILURES:
- Non-success status / connectivity failure -> AssistantNetworkError
- Envelope without choices/message -> AssistantResponseError
- No retries; transport default timeouts
"""

from typing import BinaryIO, Optional, Union
from uuid import UUID

import httpx
import structlog

from family_finance.agents.interpreter import ActionInterpreter
from family_finance.audit import AuditLogger
from family_finance.config import OpenAISettings, get_settings
from family_finance.models.actions import AssistantReply
from family_finance.models.audit import AuditEventBuilder
from family_finance.services.storage import FinanceStorageInterface


logger = structlog.get_logger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Please configure your OpenAI API key (set OPENAI_API_KEY or edit "
    "family_finance/resources/openai.json) and restart the app."
)

SYSTEM_PROMPT = """You are the assistant of the "Family Finance" app.
You turn what the user says into financial records.

Records the app knows about:
- Account: title (required), amount (required, > 0), isCredit (true = income/credit/received, false = expense/debit/paid), notes (optional), personName (optional), accountTypeName (optional)
- Person: name (required), phone (optional), email (optional)
- AccountType: name (required), description (optional)

When the user describes a transaction or asks for a record, answer ONLY with a JSON object of this shape:
{
  "actions": [
    {
      "type": "create_account",
      "title": "string",
      "amount": number,
      "isCredit": boolean,
      "notes": "string or null",
      "personName": "string or null",
      "accountTypeName": "string or null"
    }
  ],
  "message": "A short friendly message, in the user's language, saying what was created"
}

Other action types:
- { "type": "create_person", "name": "string", "phone": "string or null", "email": "string or null" }
- { "type": "create_account_type", "name": "string", "description": "string or null" }

Rules:
- When a person is mentioned, put it in personName; the app finds or creates the person
- When an account type is mentioned, put it in accountTypeName; the app finds or creates it
- amount is always positive
- paid, spent, bought, expense -> isCredit false; received, earned, sold, income -> isCredit true
- If the user is only chatting or asking a question, answer { "actions": [], "message": "your answer" }
- Answer with valid JSON only: no markdown, no code fences, no extra text
- Use the same language as the user"""


class AssistantError(Exception):
    """Base exception for assistant service errors."""
    pass


class AssistantNetworkError(AssistantError):
    """The external service could not be reached or answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AssistantResponseError(AssistantError):
    """The external service answered, but not with the expected envelope."""
    pass


class FinanceAssistant:
    """
    Client for the completion and transcription endpoints.

    RESPONSIBILITIES:
    - Build the completion request
    - Extract the assistant text from the response envelope
    - Delegate record creation to the ActionInterpreter
    - Transcribe recorded audio

    BOUNDARIES:
    - NEVER touches the store directly
    - NEVER swallows transport failures
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        settings: Optional[OpenAISettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        interpreter: Optional[ActionInterpreter] = None,
    ):
        self._settings = settings or get_settings().openai
        self._audit_logger = audit_logger
        self._transport = transport
        self._interpreter = interpreter or ActionInterpreter(storage, audit_logger)

    def is_configured(self) -> bool:
        return self._settings.is_configured

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        if self._settings.api_key.strip():
            headers["Authorization"] = f"Bearer {self._settings.api_key.strip()}"
        return httpx.AsyncClient(
            base_url=self._settings.base_url,
            headers=headers,
            transport=self._transport,
        )

    async def _post(self, path: str, **kwargs) -> dict:
        async with self._client() as client:
            try:
                response = await client.post(path, **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise AssistantNetworkError(
                    f"Response status code does not indicate success: "
                    f"{e.response.status_code} ({e.response.reason_phrase})",
                    status_code=e.response.status_code,
                ) from e
            except httpx.TransportError as e:
                raise AssistantNetworkError(str(e) or type(e).__name__) from e

        try:
            body = response.json()
        except ValueError as e:
            raise AssistantResponseError(f"Response from {path} is not JSON") from e
        if not isinstance(body, dict):
            raise AssistantResponseError(f"Response from {path} is not a JSON object")
        return body

    def build_completion_request(self, user_prompt: str) -> dict:
        """The chat completion payload for one user prompt."""
        return {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
        }

    @staticmethod
    def extract_content(envelope: dict) -> str:
        """
        Read choices[0].message.content.

        A null content is treated as an empty object, so it yields the
        default message and no records.
        """
        try:
            content = envelope["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AssistantResponseError(
                "Completion response has no choices[0].message.content"
            ) from e
        if content is None:
            return "{}"
        if not isinstance(content, str):
            raise AssistantResponseError("Completion content is not text")
        return content

    async def process_prompt(
        self,
        user_prompt: str,
        correlation_id: Optional[UUID] = None,
    ) -> AssistantReply:
        """
        Turn free text into records.

        Returns:
            AssistantReply(message, records_created)

        Raises:
            AssistantNetworkError: Transport failure
            AssistantResponseError: Malformed response envelope
        """
        if not self.is_configured():
            logger.warning("assistant_not_configured")
            if self._audit_logger:
                await self._audit_logger.log(
                    AuditEventBuilder.assistant_not_configured(correlation_id)
                )
            return AssistantReply(message=NOT_CONFIGURED_MESSAGE, records_created=0)

        try:
            envelope = await self._post(
                "/chat/completions",
                json=self.build_completion_request(user_prompt),
            )
            content = self.extract_content(envelope)
        except AssistantError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="chat_completions",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        reply = await self._interpreter.apply(content, correlation_id=correlation_id)

        logger.info(
            "assistant_prompt_processed",
            model=self._settings.model,
            records_created=reply.records_created,
        )
        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.assistant_replied(
                records_created=reply.records_created,
                model=self._settings.model,
                correlation_id=correlation_id,
            ))
        return reply

    async def transcribe_audio(
        self,
        audio: Union[bytes, BinaryIO],
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Transcribe recorded audio.

        Returns:
            The transcript ("" when the service returns no text)

        Raises:
            AssistantNetworkError: Transport failure
        """
        try:
            body = await self._post(
                "/audio/transcriptions",
                files={"file": (filename, audio)},
                data={"model": self._settings.whisper_model},
            )
        except AssistantError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="audio_transcriptions",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if "text" not in body:
            raise AssistantResponseError("Transcription response has no text field")
        return body["text"] or ""
