"""
Core Data Models for Family Finance

These models define the schemas for the three stored entity kinds and the
form/view models that sit at the user-input boundary.

DESIGN DECISION: Identity is a plain integer assigned by the store.
UNASSIGNED_ID (0) marks an entity that has never been saved; the store
inserts such entities and writes the new id back onto the object.

Relations on Account (person, account_type) are a transient join. They are
populated by the store on read and are never written back.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


UNASSIGNED_ID = 0


# =============================================================================
# ENUMS
# =============================================================================

class AccountFilter(str, Enum):
    """List filter for accounts by polarity."""
    ALL = "All"
    CREDIT = "Credit"
    DEBIT = "Debit"


class BalanceSign(str, Enum):
    """Which way the household balance currently leans."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    ZERO = "zero"


# =============================================================================
# STORED ENTITIES
# =============================================================================

class Person(BaseModel):
    """
    A member of the household (or anyone money moves to/from).

    Deleting a person never deletes their accounts; the accounts simply
    lose their person reference.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(
        default=UNASSIGNED_ID,
        ge=0,
        description="Store-assigned identity, 0 until first save"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Display name (required)"
    )
    phone: Optional[str] = None
    email: Optional[str] = None
    photo_base64: Optional[str] = Field(
        default=None,
        description="Profile photo bytes, base64-encoded"
    )

    @property
    def has_photo(self) -> bool:
        return bool(self.photo_base64)


class AccountType(BaseModel):
    """A user-defined category for accounts (e.g. Salary, Groceries)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(default=UNASSIGNED_ID, ge=0)
    name: str = Field(
        ...,
        min_length=1,
        description="Type name (required)"
    )
    description: Optional[str] = None


class Account(BaseModel):
    """
    A single credit or debit entry.

    is_credit=True is an inflow (received, earned, sold);
    is_credit=False is an outflow (paid, spent, bought).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(default=UNASSIGNED_ID, ge=0)
    title: str = Field(
        ...,
        min_length=1,
        description="Short description of the entry (required)"
    )
    amount: Decimal = Field(
        ...,
        description="Entry amount; positivity is enforced at the form boundary only"
    )
    is_credit: bool = Field(
        default=False,
        description="Polarity: True for credit, False for debit"
    )
    notes: Optional[str] = None
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the entry was created"
    )
    person_id: Optional[int] = None
    account_type_id: Optional[int] = None

    # Transient relations, populated on read
    person: Optional[Person] = Field(default=None, exclude=True)
    account_type: Optional[AccountType] = Field(default=None, exclude=True)


# =============================================================================
# FORM MODELS (user-input boundary)
# =============================================================================

class AccountForm(BaseModel):
    """
    Raw account form input.

    Fields are deliberately loose (amount is the typed text); the
    RecordValidator decides whether the form may be saved.
    """

    editing: Optional[Account] = Field(
        default=None,
        description="Existing account being edited, None for a new one"
    )
    title: str = ""
    amount_text: str = ""
    is_credit: bool = True
    notes: Optional[str] = None
    person_id: Optional[int] = None
    account_type_id: Optional[int] = None


class PersonForm(BaseModel):
    """Raw person form input."""

    editing: Optional[Person] = None
    name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    photo_base64: Optional[str] = None


class AccountTypeForm(BaseModel):
    """Raw account type form input."""

    editing: Optional[AccountType] = None
    name: str = ""
    description: Optional[str] = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating one form."""

    form: str = Field(
        ...,
        description="Which form was validated (account, person, account_type)"
    )
    validated_at: datetime = Field(
        default_factory=datetime.now
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def first_message(self) -> Optional[str]:
        """The message a form would show first, if any."""
        for issue in self.issues:
            if issue.severity == "error":
                return issue.message
        return None


# =============================================================================
# VIEW MODELS
# =============================================================================

class PersonOverview(BaseModel):
    """A person together with how many accounts reference them."""

    person: Person
    account_count: int = Field(ge=0)


class BalanceSummary(BaseModel):
    """Credits, debits and the resulting balance for a list of accounts."""

    total_credit: Decimal = Decimal("0")
    total_debit: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.total_credit - self.total_debit

    @property
    def sign(self) -> BalanceSign:
        if self.balance > 0:
            return BalanceSign.POSITIVE
        if self.balance < 0:
            return BalanceSign.NEGATIVE
        return BalanceSign.ZERO


class ChatMessage(BaseModel):
    """One line in the assistant conversation."""

    content: str = ""
    is_user: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)
