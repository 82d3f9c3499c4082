"""Form validation package."""

from family_finance.validation.validator import RecordValidator, parse_amount

__all__ = ["RecordValidator", "parse_amount"]
