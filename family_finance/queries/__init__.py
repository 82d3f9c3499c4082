"""Ledger query package."""

from family_finance.queries.ledger import LedgerQueries, LedgerView

__all__ = ["LedgerQueries", "LedgerView"]
