"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the assistant and export logic decoupled from SQL
2. Use a throwaway SQLite file for testing
3. Move to another backend without touching callers

The interface is intentionally simple - we're not building a full ORM.
Just the operations the household records need.

All save_* operations are upserts keyed on the UNASSIGNED_ID sentinel:
an entity with id 0 is inserted and receives its new id; any other id
updates the existing row.
"""

from abc import ABC, abstractmethod
from typing import Optional

from family_finance.models.records import Account, AccountType, Person


class FinanceStorageInterface(ABC):
    """
    Abstract interface for household record storage.

    Usage pattern is single-writer: callers do not issue overlapping
    save/resolve sequences, so implementations need no locking.
    """

    @abstractmethod
    async def init(self) -> None:
        """Create the schema for all entity kinds. Safe to call repeatedly."""
        pass

    # ---- Account ----

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """
        List all accounts with person/account_type relations populated.

        References that are null or point at a missing row leave the
        relation as None.
        """
        pass

    @abstractmethod
    async def list_accounts_by_person(self, person_id: int) -> list[Account]:
        """List accounts referencing a person, relations populated."""
        pass

    @abstractmethod
    async def get_account(self, account_id: int) -> Optional[Account]:
        pass

    @abstractmethod
    async def save_account(self, account: Account) -> Account:
        """
        Insert or update an account.

        Returns:
            The same object, with its id assigned on insert

        Raises:
            NotFoundError: If updating an id that no longer exists
        """
        pass

    @abstractmethod
    async def delete_account(self, account: Account) -> bool:
        pass

    # ---- Person ----

    @abstractmethod
    async def list_people(self) -> list[Person]:
        pass

    @abstractmethod
    async def get_person(self, person_id: int) -> Optional[Person]:
        pass

    @abstractmethod
    async def find_person_by_name(self, name: str) -> Optional[Person]:
        """Case-insensitive exact name match; lowest id wins."""
        pass

    @abstractmethod
    async def save_person(self, person: Person) -> Person:
        pass

    @abstractmethod
    async def delete_person(self, person: Person) -> int:
        """
        Delete a person without deleting their accounts.

        Every account referencing the person has its person_id cleared
        before the person row is removed.

        Returns:
            Number of accounts that were unlinked
        """
        pass

    @abstractmethod
    async def count_accounts_by_person(self, person_id: int) -> int:
        pass

    # ---- AccountType ----

    @abstractmethod
    async def list_account_types(self) -> list[AccountType]:
        pass

    @abstractmethod
    async def get_account_type(self, account_type_id: int) -> Optional[AccountType]:
        pass

    @abstractmethod
    async def find_account_type_by_name(self, name: str) -> Optional[AccountType]:
        """Case-insensitive exact name match; lowest id wins."""
        pass

    @abstractmethod
    async def save_account_type(self, account_type: AccountType) -> AccountType:
        pass

    @abstractmethod
    async def delete_account_type(self, account_type: AccountType) -> bool:
        """
        Delete an account type unconditionally.

        Accounts keep their (now dangling) account_type_id. Callers warn
        the user first using count_accounts_by_type.
        """
        pass

    @abstractmethod
    async def count_accounts_by_type(self, account_type_id: int) -> int:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class PersonNotFoundError(NotFoundError):
    """A person id did not resolve to a stored person."""

    def __init__(self, person_id: int):
        self.person_id = person_id
        super().__init__(f"Person with Id {person_id} not found.")


class DatabaseConnectionError(StorageError):
    """Could not open the local database."""
    pass
