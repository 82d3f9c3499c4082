"""
Ledger Queries

Read-side helpers behind the account and people lists:
- filter accounts by polarity
- credits minus debits over all accounts
- people with their linked-account counts

These are DETERMINISTIC computations on stored data; nothing here writes.
"""

from decimal import Decimal
from typing import Union

from family_finance.models.records import (
    Account,
    AccountFilter,
    BalanceSummary,
    PersonOverview,
)
from family_finance.services.storage import FinanceStorageInterface


class LedgerView(BalanceSummary):
    """Filtered accounts plus the balance over the unfiltered list."""

    mode: AccountFilter = AccountFilter.ALL
    accounts: list[Account] = []


class LedgerQueries:
    """Queries over the household ledger."""

    def __init__(self, storage: FinanceStorageInterface):
        self._storage = storage

    @staticmethod
    def filter_accounts(
        accounts: list[Account],
        mode: Union[AccountFilter, str] = AccountFilter.ALL,
    ) -> list[Account]:
        mode = AccountFilter(mode)
        if mode == AccountFilter.CREDIT:
            return [a for a in accounts if a.is_credit]
        if mode == AccountFilter.DEBIT:
            return [a for a in accounts if not a.is_credit]
        return list(accounts)

    @staticmethod
    def balance(accounts: list[Account]) -> BalanceSummary:
        return BalanceSummary(
            total_credit=sum((a.amount for a in accounts if a.is_credit), Decimal("0")),
            total_debit=sum((a.amount for a in accounts if not a.is_credit), Decimal("0")),
        )

    async def ledger(self, mode: Union[AccountFilter, str] = AccountFilter.ALL) -> LedgerView:
        """All accounts under a filter, with the overall balance."""
        accounts = await self._storage.list_accounts()
        summary = self.balance(accounts)
        return LedgerView(
            mode=AccountFilter(mode),
            accounts=self.filter_accounts(accounts, mode),
            total_credit=summary.total_credit,
            total_debit=summary.total_debit,
        )

    async def people_overview(self) -> list[PersonOverview]:
        """Every person with the number of accounts that reference them."""
        overview = []
        for person in await self._storage.list_people():
            count = await self._storage.count_accounts_by_person(person.id)
            overview.append(PersonOverview(person=person, account_count=count))
        return overview
