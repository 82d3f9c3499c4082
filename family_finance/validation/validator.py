"""
Form Validation

DESIGN DECISION: Validation happens at the boundary that accepts user
input, before anything reaches the store:

ACCOUNT FORM:
- Title must not be blank
- Amount text must parse to a number greater than zero

PERSON / ACCOUNT TYPE FORMS:
- Name must not be blank

IMPORTANT: Records created by the assistant do NOT pass through here.
The assistant path applies its own defaults and accepts any amount.

Validation NEVER silently fixes input. It reports issues for the form to
display; the first error is what the user sees.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from family_finance.models.records import (
    AccountForm,
    AccountTypeForm,
    PersonForm,
    ValidationIssue,
    ValidationResult,
)


TITLE_REQUIRED = "Title is required."
AMOUNT_NOT_POSITIVE = "Amount must be greater than zero."
NAME_REQUIRED = "Name is required."


def parse_amount(text: str) -> Optional[Decimal]:
    """Parse user-typed amount text. Returns None when it is not a finite number."""
    try:
        amount = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not amount.is_finite():
        return None
    return amount


class RecordValidator:
    """Validates the three record forms."""

    def _required(self, value: Optional[str], field: str, message: str) -> list[ValidationIssue]:
        if value is None or not value.strip():
            return [ValidationIssue(
                field=field,
                issue_type="missing",
                message=message,
            )]
        return []

    def validate_account(self, form: AccountForm) -> ValidationResult:
        issues = self._required(form.title, "title", TITLE_REQUIRED)

        amount = parse_amount(form.amount_text)
        if amount is None or amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=AMOUNT_NOT_POSITIVE,
            ))

        return ValidationResult(form="account", issues=issues)

    def validate_person(self, form: PersonForm) -> ValidationResult:
        return ValidationResult(
            form="person",
            issues=self._required(form.name, "name", NAME_REQUIRED),
        )

    def validate_account_type(self, form: AccountTypeForm) -> ValidationResult:
        return ValidationResult(
            form="account_type",
            issues=self._required(form.name, "name", NAME_REQUIRED),
        )
