"""
Tests for the action interpreter: decoding assistant answers and applying
them to the store.
"""

import json
import pytest
from decimal import Decimal

from family_finance.agents.interpreter import (
    DEFAULT_MESSAGE,
    UNPROCESSABLE_MESSAGE,
    ActionInterpreter,
    decode_response,
    strip_code_fence,
)
from family_finance.models.actions import AiResponse, PlainTextResponse
from family_finance.models.audit import AuditEventType
from family_finance.models.records import AccountType, Person


def _answer(*actions, message="Saved."):
    return json.dumps({"actions": list(actions), "message": message})


@pytest.fixture
def interpreter(storage, audit_logger):
    return ActionInterpreter(storage, audit_logger)


class TestCodeFence:
    """Tests for Markdown fence removal."""

    def test_plain_text_unchanged(self):
        """Test unfenced text is only trimmed."""
        assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'

    def test_fence_with_language_tag(self):
        """Test a ```json fence is removed."""
        fenced = '```json\n{"actions": [], "message": "hi"}\n```'
        assert strip_code_fence(fenced) == '{"actions": [], "message": "hi"}'

    def test_text_after_closing_fence_dropped(self):
        """Test everything from the last fence on is discarded."""
        fenced = '```\n{"message": "hi"}\n```\nHope this helps!'
        assert strip_code_fence(fenced) == '{"message": "hi"}'

    def test_fence_without_newline(self):
        """Test a one-line fence does not decode as JSON."""
        decoded = decode_response('```{"message": "hi"}```')
        assert isinstance(decoded, PlainTextResponse)


class TestDecodeResponse:
    """Tests for decode_response."""

    def test_fenced_equals_unfenced(self):
        """Test fencing does not change the decoded answer."""
        body = _answer({"type": "create_person", "name": "Ana"})
        assert decode_response(f"```json\n{body}\n```") == decode_response(body)

    def test_structured_answer(self):
        """Test a valid object decodes into AiResponse."""
        decoded = decode_response(_answer())
        assert isinstance(decoded, AiResponse)
        assert decoded.message == "Saved."

    def test_non_json_is_plain_text(self):
        """Test free text is returned verbatim."""
        decoded = decode_response("Sure! What would you like to record?")
        assert isinstance(decoded, PlainTextResponse)
        assert decoded.text == "Sure! What would you like to record?"

    def test_null_payload(self):
        """Test a literal null gives the unprocessable message."""
        decoded = decode_response("null")
        assert isinstance(decoded, PlainTextResponse)
        assert decoded.text == UNPROCESSABLE_MESSAGE

    def test_string_amount_and_flag_not_coerced(self):
        """Test quoted numbers and non-boolean flags make the answer plain text."""
        raw = (
            '{"actions":[{"type":"create_account","title":"X",'
            '"amount":"12.5","isCredit":"yes"}],"message":"m"}'
        )
        decoded = decode_response(raw)
        assert isinstance(decoded, PlainTextResponse)
        assert decoded.text == raw

    def test_schema_mismatch_is_plain_text(self):
        """Test JSON of the wrong shape falls back to the raw text."""
        raw = '{"actions": "not a list"}'
        decoded = decode_response(raw)
        assert isinstance(decoded, PlainTextResponse)
        assert decoded.text == raw


class TestApply:
    """Tests for ActionInterpreter.apply."""

    @pytest.mark.asyncio
    async def test_plain_text_creates_nothing(self, interpreter, storage, audit_logger):
        """Test a non-JSON answer is shown as-is with zero records."""
        reply = await interpreter.apply("I can only help with finances.")

        assert reply.message == "I can only help with finances."
        assert reply.records_created == 0
        assert await storage.list_accounts() == []
        assert audit_logger.recent_events[-1].event_type == (
            AuditEventType.ASSISTANT_UNSTRUCTURED_REPLY
        )

    @pytest.mark.asyncio
    async def test_missing_message_defaults(self, interpreter):
        """Test an answer without message uses the default."""
        reply = await interpreter.apply('{"actions": []}')
        assert reply.message == DEFAULT_MESSAGE
        assert reply.records_created == 0

    @pytest.mark.asyncio
    async def test_empty_object(self, interpreter):
        """Test {} applies nothing and reports the default message."""
        reply = await interpreter.apply("{}")
        assert reply.message == DEFAULT_MESSAGE
        assert reply.records_created == 0

    @pytest.mark.asyncio
    async def test_account_creates_new_person(self, interpreter, storage):
        """Test an unknown personName creates the person and links it."""
        reply = await interpreter.apply(_answer({
            "type": "create_account",
            "title": "Groceries",
            "amount": 50,
            "isCredit": False,
            "personName": "John",
        }, message="Recorded"))

        assert reply.message == "Recorded"
        assert reply.records_created == 1

        [person] = await storage.list_people()
        [account] = await storage.list_accounts()
        assert person.name == "John"
        assert account.person_id == person.id
        assert account.amount == Decimal("50")
        assert account.is_credit is False

    @pytest.mark.asyncio
    async def test_account_reuses_existing_person(self, interpreter, storage):
        """Test personName matches an existing person in any case."""
        existing = await storage.save_person(Person(name="John"))

        await interpreter.apply(_answer({
            "type": "create_account",
            "title": "Salary",
            "amount": 3000,
            "isCredit": True,
            "personName": "john",
        }))

        assert len(await storage.list_people()) == 1
        [account] = await storage.list_accounts()
        assert account.person_id == existing.id

    @pytest.mark.asyncio
    async def test_account_type_created_once(self, interpreter, storage):
        """Test two prompts naming the same type share one AccountType."""
        action = {
            "type": "create_account",
            "title": "Market",
            "amount": 20,
            "accountTypeName": "Food",
        }
        await interpreter.apply(_answer(action))
        await interpreter.apply(_answer({**action, "accountTypeName": "FOOD"}))

        types = await storage.list_account_types()
        assert [t.name for t in types] == ["Food"]
        accounts = await storage.list_accounts()
        assert {a.account_type_id for a in accounts} == {types[0].id}

    @pytest.mark.asyncio
    async def test_account_defaults(self, interpreter, storage):
        """Test missing account fields fall back to defaults."""
        reply = await interpreter.apply(_answer({"type": "create_account"}))

        assert reply.records_created == 1
        [account] = await storage.list_accounts()
        assert account.title == "Untitled"
        assert account.amount == Decimal("0")
        assert account.is_credit is False
        assert account.person_id is None
        assert account.account_type_id is None

    @pytest.mark.asyncio
    async def test_blank_names_not_resolved(self, interpreter, storage):
        """Test blank personName/accountTypeName link nothing."""
        await interpreter.apply(_answer({
            "type": "create_account",
            "title": "   ",
            "amount": 5,
            "personName": "",
            "accountTypeName": "  ",
        }))

        assert await storage.list_people() == []
        assert await storage.list_account_types() == []
        [account] = await storage.list_accounts()
        assert account.title == "Untitled"

    @pytest.mark.asyncio
    async def test_negative_amount_accepted(self, interpreter, storage):
        """Test the assistant path does not enforce amount > 0."""
        await interpreter.apply(_answer({
            "type": "create_account",
            "title": "Refund",
            "amount": -12.5,
        }))

        [account] = await storage.list_accounts()
        assert account.amount == Decimal("-12.5")

    @pytest.mark.asyncio
    async def test_mistyped_action_creates_nothing(self, interpreter, storage):
        """Test one mistyped action discards the whole answer."""
        raw = _answer(
            {"type": "create_person", "name": "Ana"},
            {"type": "create_account", "title": "Lunch", "amount": "7", "isCredit": 1},
        )

        reply = await interpreter.apply(raw)

        assert reply.records_created == 0
        assert reply.message == raw
        assert await storage.list_accounts() == []
        assert await storage.list_people() == []

    @pytest.mark.asyncio
    async def test_person_and_type_actions(self, interpreter, storage):
        """Test create_person and create_account_type with defaults."""
        reply = await interpreter.apply(_answer(
            {"type": "create_person", "name": "Maria", "phone": "555-0101"},
            {"type": "create_person"},
            {"type": "create_account_type", "name": "Transport", "description": "Bus"},
        ))

        assert reply.records_created == 3
        people = await storage.list_people()
        assert [p.name for p in people] == ["Maria", "Unknown"]
        assert people[0].phone == "555-0101"
        [account_type] = await storage.list_account_types()
        assert account_type.description == "Bus"

    @pytest.mark.asyncio
    async def test_create_account_type_always_inserts(self, interpreter, storage):
        """Test create_account_type does not deduplicate by name."""
        await storage.save_account_type(AccountType(name="Food"))
        await interpreter.apply(_answer({"type": "create_account_type", "name": "Food"}))
        assert len(await storage.list_account_types()) == 2

    @pytest.mark.asyncio
    async def test_unknown_action_skipped(self, interpreter, storage):
        """Test unknown action types are skipped and not counted."""
        reply = await interpreter.apply(_answer(
            {"type": "delete_account", "id": 1},
            {"type": "create_person", "name": "Ana"},
        ))

        assert reply.records_created == 1
        assert len(await storage.list_people()) == 1

    @pytest.mark.asyncio
    async def test_created_records_audited(self, interpreter, audit_logger):
        """Test every created record is audited as assistant-sourced."""
        await interpreter.apply(_answer({
            "type": "create_account",
            "title": "Lunch",
            "amount": 12,
            "personName": "Ana",
            "accountTypeName": "Food",
        }))

        created = [
            e for e in audit_logger.recent_events
            if e.event_type == AuditEventType.RECORD_CREATED
        ]
        assert [e.entity_type for e in created] == ["person", "account_type", "account"]
        assert all(e.details["source"] == "assistant" for e in created)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
