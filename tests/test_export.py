"""
Tests for the migration export builder.
"""

import json
import pytest
from datetime import datetime
from decimal import Decimal

from family_finance.models.audit import AuditEventType
from family_finance.models.migration import MigrationSnapshot
from family_finance.models.records import Account, AccountType, Person
from family_finance.services.export import MigrationExporter, migration_file_name
from family_finance.services.storage import PersonNotFoundError


@pytest.fixture
def exporter(storage, export_settings, audit_logger):
    return MigrationExporter(storage, settings=export_settings, audit_logger=audit_logger)


async def _household(storage) -> Person:
    """Ana with a 100 debit and a 50 credit; Bruno with nothing."""
    ana = await storage.save_person(Person(name="Ana", email="ana@example.com"))
    await storage.save_person(Person(name="Bruno"))
    food = await storage.save_account_type(AccountType(name="Food"))
    await storage.save_account(Account(
        title="Market",
        amount=Decimal("100"),
        is_credit=False,
        person_id=ana.id,
        account_type_id=food.id,
        created_at=datetime(2024, 6, 1, 10, 0),
    ))
    await storage.save_account(Account(
        title="Sold bike",
        amount=Decimal("50"),
        is_credit=True,
        notes="used",
        person_id=ana.id,
        created_at=datetime(2024, 6, 2, 11, 0),
    ))
    return ana


class TestFileName:
    """Tests for migration_file_name."""

    def test_only_letters_and_digits_kept(self):
        """Test punctuation and spaces are removed from the name."""
        person = Person(id=7, name="Mary-Ann O'Neil 2")
        assert migration_file_name(person) == "migration_MaryAnnONeil2_7.json"

    def test_non_ascii_letters_kept(self):
        """Test accented letters count as letters."""
        assert migration_file_name(Person(id=1, name="José")) == "migration_José_1.json"


class TestSnapshot:
    """Tests for MigrationExporter.build_snapshot."""

    @pytest.mark.asyncio
    async def test_polarity_is_inverted(self, storage, exporter):
        """Test exported isCredit is the negation of the stored flag."""
        ana = await _household(storage)

        snapshot = await exporter.build_snapshot(ana.id)

        flags = {a.title: a.is_credit for a in snapshot.accounts}
        assert flags == {"Market": True, "Sold bike": False}

    @pytest.mark.asyncio
    async def test_totals_follow_exported_polarity(self, storage, exporter):
        """Test a 100 debit and a 50 credit export as credit 100, debit 50."""
        ana = await _household(storage)

        summary = (await exporter.build_snapshot(ana.id)).summary

        assert summary.total_accounts == 2
        assert summary.total_credit == Decimal("100")
        assert summary.total_debit == Decimal("50")
        assert summary.net_balance == Decimal("50")

    @pytest.mark.asyncio
    async def test_person_summary(self, storage, exporter):
        """Test person fields and hasPhoto."""
        ana = await _household(storage)
        ana.photo_base64 = "aGVsbG8="
        await storage.save_person(ana)

        person = (await exporter.build_snapshot(ana.id)).person

        assert person.name == "Ana"
        assert person.email == "ana@example.com"
        assert person.has_photo is True

    @pytest.mark.asyncio
    async def test_account_type_name_exported(self, storage, exporter):
        """Test account type names replace ids; missing types are null."""
        ana = await _household(storage)

        accounts = (await exporter.build_snapshot(ana.id)).accounts

        assert accounts[0].account_type == "Food"
        assert accounts[1].account_type is None
        assert accounts[1].notes == "used"

    @pytest.mark.asyncio
    async def test_person_without_accounts(self, storage, exporter):
        """Test an existing person with no accounts exports empty totals."""
        await _household(storage)
        bruno = await storage.find_person_by_name("Bruno")

        snapshot = await exporter.build_snapshot(bruno.id)

        assert snapshot.accounts == []
        assert snapshot.summary.total_accounts == 0
        assert snapshot.summary.net_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_missing_person_fails(self, exporter):
        """Test a missing person raises rather than exporting nothing."""
        with pytest.raises(PersonNotFoundError, match="Person with Id 404 not found."):
            await exporter.build_snapshot(404)

    @pytest.mark.asyncio
    async def test_generate_json(self, storage, exporter):
        """Test the serialized document layout."""
        ana = await _household(storage)

        data = json.loads(await exporter.generate_json(ana.id))

        assert data["version"] == "1.0"
        assert data["summary"]["netBalance"] == 50.0
        assert data["accounts"][0] == {
            "id": 1,
            "title": "Market",
            "amount": 100.0,
            "isCredit": True,
            "accountType": "Food",
            "notes": None,
            "createdAt": "2024-06-01T10:00:00",
        }

    @pytest.mark.asyncio
    async def test_whole_amounts_written_as_integers(self, storage, exporter):
        """Test stored 100.00 is written as 100 and fractions keep their digits."""
        ana = await _household(storage)
        await storage.save_account(
            Account(title="Coffee", amount=Decimal("2.75"), person_id=ana.id)
        )

        text = await exporter.generate_json(ana.id)

        assert '"amount": 100,' in text
        assert '"amount": 2.75,' in text
        assert '"netBalance": 52.75' in text

    @pytest.mark.asyncio
    async def test_json_reads_back(self, storage, exporter):
        """Test the written document parses back with the same summary."""
        ana = await _household(storage)
        snapshot = await exporter.build_snapshot(ana.id)

        restored = MigrationSnapshot.model_validate_json(snapshot.to_json())

        assert restored.summary == snapshot.summary
        assert restored.person == snapshot.person
        assert [a.title for a in restored.accounts] == ["Market", "Sold bike"]


class TestExportFiles:
    """Tests for writing migration files."""

    @pytest.mark.asyncio
    async def test_export_person_writes_file(self, storage, exporter, export_settings, audit_logger):
        """Test one file is written in the export directory."""
        ana = await _household(storage)

        path = await exporter.export_person(ana.id)

        assert path.name == f"migration_Ana_{ana.id}.json"
        assert str(path.parent) == export_settings.output_dir
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["person"]["id"] == ana.id
        assert audit_logger.recent_events[-1].event_type == AuditEventType.EXPORT_WRITTEN

    @pytest.mark.asyncio
    async def test_export_missing_person_writes_nothing(self, exporter):
        """Test no file appears for a missing person."""
        with pytest.raises(PersonNotFoundError):
            await exporter.export_person(3)
        assert not exporter.output_dir.exists()

    @pytest.mark.asyncio
    async def test_export_all(self, storage, exporter):
        """Test one file per person."""
        await _household(storage)

        paths = await exporter.export_all()

        assert sorted(p.name for p in paths) == ["migration_Ana_1.json", "migration_Bruno_2.json"]
        assert all(p.exists() for p in paths)

    @pytest.mark.asyncio
    async def test_export_all_empty_store(self, exporter):
        """Test an empty store writes nothing."""
        assert await exporter.export_all() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
