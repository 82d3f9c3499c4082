"""
Migration Snapshot Models

A snapshot is the per-person JSON document handed to the downstream
migration tool. Its byte layout is a contract: camelCase keys in
declaration order, two-space indentation, amounts as JSON numbers.

KNOWN QUIRK: AccountMigration.is_credit is the negation of the stored
Account.is_credit flag. Existing exported files depend on it, so the
builder keeps the inversion until the downstream consumer is confirmed to
expect the stored polarity.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, computed_field
from pydantic.alias_generators import to_camel


def _json_number(value: Decimal) -> Union[int, float]:
    """Whole amounts are written as integers (100, not 100.0)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


JsonAmount = Annotated[
    Decimal,
    PlainSerializer(_json_number, return_type=Union[int, float], when_used="json"),
]


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersonSummary(_SnapshotModel):
    """Who the snapshot belongs to. The photo itself is never exported."""

    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    has_photo: bool = False


class FinancialSummary(_SnapshotModel):
    """Totals derived from the exported account list."""

    total_accounts: int = Field(default=0, ge=0)
    total_credit: JsonAmount = Decimal("0")
    total_debit: JsonAmount = Decimal("0")

    @computed_field(alias="netBalance")
    @property
    def net_balance(self) -> JsonAmount:
        return self.total_credit - self.total_debit


class AccountMigration(_SnapshotModel):
    id: int
    title: str
    amount: JsonAmount
    is_credit: bool
    account_type: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class MigrationSnapshot(_SnapshotModel):
    """The complete per-person export document."""

    version: str = "1.0"
    generated_at: datetime = Field(default_factory=datetime.now)
    person: PersonSummary
    summary: FinancialSummary = Field(default_factory=FinancialSummary)
    accounts: list[AccountMigration] = Field(default_factory=list)

    def to_json(self) -> str:
        """Serialize in the exported file layout."""
        return self.model_dump_json(by_alias=True, indent=2)
