"""
SQLite Storage Implementation

DESIGN DECISION: A local SQLite file through SQLAlchemy is the store because:
1. The app is single-user and single-device
2. No server to install or keep running
3. The file is easy to back up or hand to the migration tool

TRADEOFFS:
- No concurrent writers (fine: usage is single-flight)
- Name lookups filter in Python so that case folding matches Python's
  rules for non-ASCII names, not SQLite's ASCII-only lower()

The engine is created lazily on first use and reused for the life of the
DatabaseClient. Schema creation runs once, on first access.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from family_finance.config import StorageSettings, get_settings
from family_finance.models.records import UNASSIGNED_ID, Account, AccountType, Person
from family_finance.services.storage.interface import (
    DatabaseConnectionError,
    FinanceStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


# ---------------------------
# Tables
# ---------------------------


class PersonRow(Base):
    __tablename__ = "Person"

    id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column("Name", String, nullable=False)
    phone: Mapped[str | None] = mapped_column("Phone", String, nullable=True)
    email: Mapped[str | None] = mapped_column("Email", String, nullable=True)
    photo_base64: Mapped[str | None] = mapped_column("PhotoBase64", Text, nullable=True)


class AccountTypeRow(Base):
    __tablename__ = "AccountType"

    id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column("Name", String, nullable=False)
    description: Mapped[str | None] = mapped_column("Description", String, nullable=True)


class AccountRow(Base):
    __tablename__ = "Account"

    id: Mapped[int] = mapped_column("Id", Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column("Title", String, nullable=False)
    amount: Mapped[Decimal] = mapped_column("Amount", Numeric(18, 2), nullable=False)
    is_credit: Mapped[bool] = mapped_column("IsCredit", Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column("Notes", Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column("CreatedAt", DateTime, nullable=False)
    # Plain integer references: deleting a person or type must not cascade
    person_id: Mapped[int | None] = mapped_column("PersonId", Integer, nullable=True, index=True)
    account_type_id: Mapped[int | None] = mapped_column(
        "AccountTypeId", Integer, nullable=True, index=True
    )


# ---------------------------
# Row <-> model mapping
# ---------------------------


def _person_from_row(row: PersonRow) -> Person:
    return Person(
        id=row.id,
        name=row.name,
        phone=row.phone,
        email=row.email,
        photo_base64=row.photo_base64,
    )


def _account_type_from_row(row: AccountTypeRow) -> AccountType:
    return AccountType(id=row.id, name=row.name, description=row.description)


def _account_from_row(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        title=row.title,
        amount=row.amount,
        is_credit=row.is_credit,
        notes=row.notes,
        created_at=row.created_at,
        person_id=row.person_id,
        account_type_id=row.account_type_id,
    )


def _same_name(stored: str, wanted: str) -> bool:
    return stored.casefold() == wanted.strip().casefold()


class DatabaseClient:
    """
    Owns the SQLAlchemy engine and session factory.

    Build one per process (create_app_components does) and pass it to
    every component that needs persistence.
    """

    def __init__(self, settings: Optional[StorageSettings] = None):
        self._settings = settings or get_settings().storage
        self._engine: Optional[Engine] = None
        self._session_maker: Optional[sessionmaker[Session]] = None
        self._initialized = False

    @property
    def database_url(self) -> str:
        return self._settings.database_url

    def connect(self) -> Engine:
        """Return the shared engine, creating it on first use."""
        if self._engine is None:
            try:
                engine = create_engine(self.database_url, echo=self._settings.echo_sql)
            except SQLAlchemyError as e:
                raise DatabaseConnectionError(f"Failed to open database: {e}") from e
            self._session_maker = sessionmaker(bind=engine, expire_on_commit=False)
            self._engine = engine
            logger.debug("database_engine_created", url=self.database_url)
        return self._engine

    def create_schema(self) -> None:
        """Create all tables. Idempotent."""
        engine = self.connect()
        Base.metadata.create_all(bind=engine)
        self._initialized = True

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""
        if not self._initialized:
            self.create_schema()
        assert self._session_maker is not None  # bound by connect
        session = self._session_maker()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Database operation failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_maker = None
            self._initialized = False


class SqlFinanceStorage(FinanceStorageInterface):
    """
    SQLAlchemy implementation of household record storage.

    Relations on accounts are populated from id lookups built once per
    list call, never through ORM relationships.
    """

    def __init__(self, client: Optional[DatabaseClient] = None):
        self._client = client or DatabaseClient()

    async def init(self) -> None:
        self._client.create_schema()

    # ---- Helpers ----

    def _populate_relations(self, session: Session, rows: list[AccountRow]) -> list[Account]:
        people = {row.id: _person_from_row(row) for row in session.scalars(select(PersonRow))}
        types = {
            row.id: _account_type_from_row(row)
            for row in session.scalars(select(AccountTypeRow))
        }

        accounts = []
        for row in rows:
            account = _account_from_row(row)
            if account.person_id is not None:
                account.person = people.get(account.person_id)
            if account.account_type_id is not None:
                account.account_type = types.get(account.account_type_id)
            accounts.append(account)
        return accounts

    # ---- Account ----

    async def list_accounts(self) -> list[Account]:
        with self._client.session_scope() as session:
            rows = list(session.scalars(select(AccountRow).order_by(AccountRow.id)))
            return self._populate_relations(session, rows)

    async def list_accounts_by_person(self, person_id: int) -> list[Account]:
        with self._client.session_scope() as session:
            rows = list(
                session.scalars(
                    select(AccountRow)
                    .where(AccountRow.person_id == person_id)
                    .order_by(AccountRow.id)
                )
            )
            return self._populate_relations(session, rows)

    async def get_account(self, account_id: int) -> Optional[Account]:
        with self._client.session_scope() as session:
            row = session.get(AccountRow, account_id)
            if row is None:
                return None
            return self._populate_relations(session, [row])[0]

    async def save_account(self, account: Account) -> Account:
        with self._client.session_scope() as session:
            if account.id == UNASSIGNED_ID:
                row = AccountRow()
                session.add(row)
            else:
                row = session.get(AccountRow, account.id)
                if row is None:
                    raise NotFoundError(f"Account with Id {account.id} not found.")
            row.title = account.title
            row.amount = account.amount
            row.is_credit = account.is_credit
            row.notes = account.notes
            row.created_at = account.created_at
            row.person_id = account.person_id
            row.account_type_id = account.account_type_id
            session.flush()
            account.id = row.id

        logger.debug("account_saved", account_id=account.id)
        return account

    async def delete_account(self, account: Account) -> bool:
        with self._client.session_scope() as session:
            result = session.execute(delete(AccountRow).where(AccountRow.id == account.id))
            return result.rowcount > 0

    # ---- Person ----

    async def list_people(self) -> list[Person]:
        with self._client.session_scope() as session:
            rows = session.scalars(select(PersonRow).order_by(PersonRow.id))
            return [_person_from_row(row) for row in rows]

    async def get_person(self, person_id: int) -> Optional[Person]:
        with self._client.session_scope() as session:
            row = session.get(PersonRow, person_id)
            return _person_from_row(row) if row is not None else None

    async def find_person_by_name(self, name: str) -> Optional[Person]:
        for person in await self.list_people():
            if _same_name(person.name, name):
                return person
        return None

    async def save_person(self, person: Person) -> Person:
        with self._client.session_scope() as session:
            if person.id == UNASSIGNED_ID:
                row = PersonRow()
                session.add(row)
            else:
                row = session.get(PersonRow, person.id)
                if row is None:
                    raise NotFoundError(f"Person with Id {person.id} not found.")
            row.name = person.name
            row.phone = person.phone
            row.email = person.email
            row.photo_base64 = person.photo_base64
            session.flush()
            person.id = row.id

        logger.debug("person_saved", person_id=person.id)
        return person

    async def delete_person(self, person: Person) -> int:
        with self._client.session_scope() as session:
            unlinked = session.execute(
                update(AccountRow)
                .where(AccountRow.person_id == person.id)
                .values(person_id=None)
            ).rowcount
            session.execute(delete(PersonRow).where(PersonRow.id == person.id))

        logger.info("person_deleted", person_id=person.id, unlinked_accounts=unlinked)
        return unlinked

    async def count_accounts_by_person(self, person_id: int) -> int:
        with self._client.session_scope() as session:
            return session.scalar(
                select(func.count()).select_from(AccountRow).where(AccountRow.person_id == person_id)
            ) or 0

    # ---- AccountType ----

    async def list_account_types(self) -> list[AccountType]:
        with self._client.session_scope() as session:
            rows = session.scalars(select(AccountTypeRow).order_by(AccountTypeRow.id))
            return [_account_type_from_row(row) for row in rows]

    async def get_account_type(self, account_type_id: int) -> Optional[AccountType]:
        with self._client.session_scope() as session:
            row = session.get(AccountTypeRow, account_type_id)
            return _account_type_from_row(row) if row is not None else None

    async def find_account_type_by_name(self, name: str) -> Optional[AccountType]:
        for account_type in await self.list_account_types():
            if _same_name(account_type.name, name):
                return account_type
        return None

    async def save_account_type(self, account_type: AccountType) -> AccountType:
        with self._client.session_scope() as session:
            if account_type.id == UNASSIGNED_ID:
                row = AccountTypeRow()
                session.add(row)
            else:
                row = session.get(AccountTypeRow, account_type.id)
                if row is None:
                    raise NotFoundError(f"AccountType with Id {account_type.id} not found.")
            row.name = account_type.name
            row.description = account_type.description
            session.flush()
            account_type.id = row.id

        logger.debug("account_type_saved", account_type_id=account_type.id)
        return account_type

    async def delete_account_type(self, account_type: AccountType) -> bool:
        with self._client.session_scope() as session:
            result = session.execute(
                delete(AccountTypeRow).where(AccountTypeRow.id == account_type.id)
            )
            return result.rowcount > 0

    async def count_accounts_by_type(self, account_type_id: int) -> int:
        with self._client.session_scope() as session:
            return session.scalar(
                select(func.count())
                .select_from(AccountRow)
                .where(AccountRow.account_type_id == account_type_id)
            ) or 0
