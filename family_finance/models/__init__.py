"""
Data Models Package

This package contains all Pydantic models used in the Family Finance core.
All data flowing through the system must conform to these schemas.
"""

from family_finance.models.records import (
    UNASSIGNED_ID,
    Account,
    AccountFilter,
    AccountForm,
    AccountType,
    AccountTypeForm,
    BalanceSign,
    BalanceSummary,
    ChatMessage,
    Person,
    PersonForm,
    PersonOverview,
    ValidationIssue,
    ValidationResult,
)
from family_finance.models.actions import (
    AiResponse,
    AssistantReply,
    PlainTextResponse,
    CreateAccountAction,
    CreateAccountTypeAction,
    CreatePersonAction,
    UnrecognizedAction,
)
from family_finance.models.migration import (
    AccountMigration,
    FinancialSummary,
    MigrationSnapshot,
    PersonSummary,
)
from family_finance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "UNASSIGNED_ID",
    "Account",
    "AccountFilter",
    "AccountForm",
    "AccountType",
    "AccountTypeForm",
    "BalanceSign",
    "BalanceSummary",
    "ChatMessage",
    "Person",
    "PersonForm",
    "PersonOverview",
    "ValidationIssue",
    "ValidationResult",
    # Assistant models
    "AiResponse",
    "AssistantReply",
    "PlainTextResponse",
    "CreateAccountAction",
    "CreateAccountTypeAction",
    "CreatePersonAction",
    "UnrecognizedAction",
    # Migration models
    "AccountMigration",
    "FinancialSummary",
    "MigrationSnapshot",
    "PersonSummary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
