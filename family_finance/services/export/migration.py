"""
Migration Export Service

Builds the per-person snapshot consumed by the downstream migration tool
and writes it to disk.

File naming: migration_{name with only letters and digits}_{person id}.json
in the configured export directory.

CRITICAL: A missing person is a hard failure (PersonNotFoundError). The
caller must report it; an empty snapshot would look like a valid export of
a person with no accounts.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog

from family_finance.audit import AuditLogger
from family_finance.config import ExportSettings, get_settings
from family_finance.models.audit import AuditEventBuilder
from family_finance.models.migration import (
    AccountMigration,
    FinancialSummary,
    MigrationSnapshot,
    PersonSummary,
)
from family_finance.models.records import Account, Person
from family_finance.services.storage import FinanceStorageInterface, PersonNotFoundError


logger = structlog.get_logger(__name__)


def migration_file_name(person: Person) -> str:
    sanitized = "".join(ch for ch in person.name if ch.isalnum())
    return f"migration_{sanitized}_{person.id}.json"


def _to_migration(account: Account) -> AccountMigration:
    return AccountMigration(
        id=account.id,
        title=account.title,
        amount=account.amount,
        # Inverted relative to the stored flag; existing exports rely on it
        is_credit=not account.is_credit,
        account_type=account.account_type.name if account.account_type else None,
        notes=account.notes,
        created_at=account.created_at,
    )


def summarize(accounts: list[AccountMigration]) -> FinancialSummary:
    """Totals over the exported (already inverted) polarity."""
    return FinancialSummary(
        total_accounts=len(accounts),
        total_credit=sum((a.amount for a in accounts if a.is_credit), Decimal("0")),
        total_debit=sum((a.amount for a in accounts if not a.is_credit), Decimal("0")),
    )


class MigrationExporter:
    """Reads a person and their accounts and produces migration snapshots."""

    def __init__(
        self,
        storage: FinanceStorageInterface,
        settings: Optional[ExportSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().export
        self._audit_logger = audit_logger

    @property
    def output_dir(self) -> Path:
        return Path(self._settings.output_dir)

    async def _require_person(self, person_id: int) -> Person:
        person = await self._storage.get_person(person_id)
        if person is None:
            raise PersonNotFoundError(person_id)
        return person

    async def _build(self, person: Person) -> MigrationSnapshot:
        accounts = await self._storage.list_accounts_by_person(person.id)
        migrations = [_to_migration(account) for account in accounts]

        return MigrationSnapshot(
            version=self._settings.format_version,
            generated_at=datetime.now(),
            person=PersonSummary(
                id=person.id,
                name=person.name,
                phone=person.phone,
                email=person.email,
                has_photo=person.has_photo,
            ),
            summary=summarize(migrations),
            accounts=migrations,
        )

    async def build_snapshot(self, person_id: int) -> MigrationSnapshot:
        """
        Build the snapshot for one person.

        Raises:
            PersonNotFoundError: If the person does not exist
        """
        person = await self._require_person(person_id)
        return await self._build(person)

    async def generate_json(self, person_id: int) -> str:
        """The snapshot for one person, serialized in the file layout."""
        snapshot = await self.build_snapshot(person_id)
        return snapshot.to_json()

    async def export_person(
        self,
        person_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> Path:
        """
        Write one person's migration file.

        Returns:
            Path of the written file

        Raises:
            PersonNotFoundError: If the person does not exist
        """
        person = await self._require_person(person_id)
        snapshot = await self._build(person)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / migration_file_name(person)
        path.write_text(snapshot.to_json(), encoding="utf-8")

        logger.info(
            "migration_file_written",
            person_id=person.id,
            path=str(path),
            accounts=snapshot.summary.total_accounts,
        )
        if self._audit_logger:
            await self._audit_logger.log(AuditEventBuilder.export_written(
                person_id=person.id,
                path=str(path),
                account_count=snapshot.summary.total_accounts,
                correlation_id=correlation_id,
            ))
        return path

    async def export_all(self, correlation_id: Optional[UUID] = None) -> list[Path]:
        """Write a migration file for every person in the store."""
        paths = []
        for person in await self._storage.list_people():
            paths.append(await self.export_person(person.id, correlation_id))
        return paths
