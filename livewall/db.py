"""
Submission and account stores: an in-memory implementation for development
and tests, and a SQLAlchemy-backed one for production.
"""

from __future__ import annotations

import dataclasses
import itertools
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from livewall.errors import ConflictError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SubmissionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SCHEDULED = "SCHEDULED"


class UploadSource(str, Enum):
    PUBLIC = "public"
    PHOTOGRAPHER = "photographer"


class AccountRole(str, Enum):
    PHOTOGRAPHER = "photographer"
    ADMIN = "admin"


@dataclass
class SubmissionRecord:
    id: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    photo_url: Optional[str] = None
    message: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    displayed: bool = False
    scheduled_for: Optional[datetime] = None
    uploaded_by: Optional[str] = None
    upload_source: UploadSource = UploadSource.PUBLIC
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Account:
    """Account projection without credentials."""

    id: str
    username: str
    is_active: bool
    role: AccountRole
    created_at: datetime
    updated_at: datetime


@dataclass
class AccountRecord:
    id: str
    username: str
    password_hash: str
    is_active: bool = True
    role: AccountRole = AccountRole.PHOTOGRAPHER
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_account(self) -> Account:
        return Account(
            id=self.id,
            username=self.username,
            is_active=self.is_active,
            role=self.role,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class SubmissionFilter:
    """Criteria for listing submissions. None means "any"."""

    status: Optional[str] = None
    displayed: Optional[bool] = None


class SubmissionStore(Protocol):
    """Persistence operations needed by the submission workflow."""

    def insert_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        ...

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        ...

    def list_submissions(
        self, criteria: SubmissionFilter, *, offset: int, limit: int
    ) -> tuple[list[SubmissionRecord], int]:
        ...

    def update_submission(
        self, submission_id: str, **fields: Any
    ) -> Optional[SubmissionRecord]:
        ...

    def update_submissions(self, submission_ids: Iterable[str], **fields: Any) -> int:
        ...

    def activate_due_submissions(self, now: datetime) -> int:
        ...

    def delete_submission(self, submission_id: str) -> bool:
        ...


class AccountStore(Protocol):
    """Persistence operations needed by the account service."""

    def insert_account(self, record: AccountRecord) -> AccountRecord:
        ...

    def get_account(self, account_id: str) -> Optional[AccountRecord]:
        ...

    def get_account_by_username(self, username: str) -> Optional[AccountRecord]:
        ...

    def list_accounts(self) -> list[AccountRecord]:
        ...

    def update_account(self, account_id: str, **fields: Any) -> Optional[AccountRecord]:
        ...

    def delete_account(self, account_id: str) -> bool:
        ...


def new_id() -> str:
    return uuid.uuid4().hex


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.submissions: Dict[str, SubmissionRecord] = {}
        self.accounts: Dict[str, AccountRecord] = {}
        # Insertion order breaks created_at ties when sorting.
        self._sequence = itertools.count()
        self._order: Dict[str, int] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.submissions.clear()
        self.accounts.clear()
        self._order.clear()

    # Submissions

    def insert_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        now = utcnow()
        stored = dataclasses.replace(record, created_at=now, updated_at=now)
        self.submissions[stored.id] = stored
        self._order[stored.id] = next(self._sequence)
        return dataclasses.replace(stored)

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        record = self.submissions.get(submission_id)
        return dataclasses.replace(record) if record else None

    def list_submissions(
        self, criteria: SubmissionFilter, *, offset: int, limit: int
    ) -> tuple[list[SubmissionRecord], int]:
        matches = [
            record
            for record in self.submissions.values()
            if (criteria.status is None or record.status.value == criteria.status)
            and (criteria.displayed is None or record.displayed == criteria.displayed)
        ]
        matches.sort(
            key=lambda record: (record.created_at, self._order[record.id]),
            reverse=True,
        )
        page = matches[offset : offset + limit]
        return [dataclasses.replace(record) for record in page], len(matches)

    def update_submission(
        self, submission_id: str, **fields: Any
    ) -> Optional[SubmissionRecord]:
        record = self.submissions.get(submission_id)
        if not record:
            return None
        updated = dataclasses.replace(record, **fields, updated_at=utcnow())
        self.submissions[submission_id] = updated
        return dataclasses.replace(updated)

    def update_submissions(self, submission_ids: Iterable[str], **fields: Any) -> int:
        modified = 0
        for submission_id in set(submission_ids):
            if self.update_submission(submission_id, **fields):
                modified += 1
        return modified

    def activate_due_submissions(self, now: datetime) -> int:
        due = [
            record.id
            for record in self.submissions.values()
            if record.status == SubmissionStatus.SCHEDULED
            and record.scheduled_for is not None
            and record.scheduled_for <= now
        ]
        return self.update_submissions(
            due, status=SubmissionStatus.APPROVED, scheduled_for=None
        )

    def delete_submission(self, submission_id: str) -> bool:
        self._order.pop(submission_id, None)
        return self.submissions.pop(submission_id, None) is not None

    # Accounts

    def insert_account(self, record: AccountRecord) -> AccountRecord:
        if self.get_account_by_username(record.username):
            raise ConflictError("Username already exists")
        now = utcnow()
        stored = dataclasses.replace(record, created_at=now, updated_at=now)
        self.accounts[stored.id] = stored
        return dataclasses.replace(stored)

    def get_account(self, account_id: str) -> Optional[AccountRecord]:
        record = self.accounts.get(account_id)
        return dataclasses.replace(record) if record else None

    def get_account_by_username(self, username: str) -> Optional[AccountRecord]:
        for record in self.accounts.values():
            if record.username == username:
                return dataclasses.replace(record)
        return None

    def list_accounts(self) -> list[AccountRecord]:
        return [dataclasses.replace(record) for record in self.accounts.values()]

    def update_account(self, account_id: str, **fields: Any) -> Optional[AccountRecord]:
        record = self.accounts.get(account_id)
        if not record:
            return None
        username = fields.get("username")
        if username is not None and username != record.username:
            if self.get_account_by_username(username):
                raise ConflictError("Username already exists")
        updated = dataclasses.replace(record, **fields, updated_at=utcnow())
        self.accounts[account_id] = updated
        return dataclasses.replace(updated)

    def delete_account(self, account_id: str) -> bool:
        return self.accounts.pop(account_id, None) is not None


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        engine_options: dict[str, Any] = {"future": True, "pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_options["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_options)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _to_submission_record(row: "SubmissionRow") -> SubmissionRecord:
        return SubmissionRecord(
            id=row.id,
            status=SubmissionStatus(row.status),
            photo_url=row.photo_url,
            message=row.message,
            username=row.username,
            email=row.email,
            displayed=row.displayed,
            scheduled_for=as_utc(row.scheduled_for),
            uploaded_by=row.uploaded_by,
            upload_source=UploadSource(row.upload_source),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    @staticmethod
    def _to_account_record(row: "AccountRow") -> AccountRecord:
        return AccountRecord(
            id=row.id,
            username=row.username,
            password_hash=row.password_hash,
            is_active=row.is_active,
            role=AccountRole(row.role),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    @staticmethod
    def _column_values(fields: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: value.value if isinstance(value, Enum) else value
            for key, value in fields.items()
        }

    # Submissions

    def insert_submission(self, record: SubmissionRecord) -> SubmissionRecord:
        now = utcnow()
        values = self._column_values(dataclasses.asdict(record))
        values.update(created_at=now, updated_at=now)
        with self.Session() as session:
            row = SubmissionRow(**values)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_submission_record(row)

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        with self.Session() as session:
            row = session.get(SubmissionRow, submission_id)
            if not row:
                return None
            return self._to_submission_record(row)

    def list_submissions(
        self, criteria: SubmissionFilter, *, offset: int, limit: int
    ) -> tuple[list[SubmissionRecord], int]:
        conditions = []
        if criteria.status is not None:
            conditions.append(SubmissionRow.status == criteria.status)
        if criteria.displayed is not None:
            conditions.append(SubmissionRow.displayed == criteria.displayed)
        with self.Session() as session:
            total = session.execute(
                select(func.count()).select_from(SubmissionRow).where(*conditions)
            ).scalar_one()
            stmt = (
                select(SubmissionRow)
                .where(*conditions)
                .order_by(SubmissionRow.created_at.desc(), SubmissionRow.id.desc())
                .offset(offset)
                .limit(limit)
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_submission_record(row) for row in rows], total

    def update_submission(
        self, submission_id: str, **fields: Any
    ) -> Optional[SubmissionRecord]:
        with self.Session() as session:
            row = session.get(SubmissionRow, submission_id)
            if not row:
                return None
            for key, value in self._column_values(fields).items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.commit()
            session.refresh(row)
            return self._to_submission_record(row)

    def update_submissions(self, submission_ids: Iterable[str], **fields: Any) -> int:
        ids = list(set(submission_ids))
        if not ids:
            return 0
        values = self._column_values(fields)
        values["updated_at"] = utcnow()
        with self.Session() as session:
            result = session.execute(
                update(SubmissionRow)
                .where(SubmissionRow.id.in_(ids))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount or 0

    def activate_due_submissions(self, now: datetime) -> int:
        with self.Session() as session:
            result = session.execute(
                update(SubmissionRow)
                .where(
                    SubmissionRow.status == SubmissionStatus.SCHEDULED.value,
                    SubmissionRow.scheduled_for.is_not(None),
                    SubmissionRow.scheduled_for <= now,
                )
                .values(
                    status=SubmissionStatus.APPROVED.value,
                    scheduled_for=None,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount or 0

    def delete_submission(self, submission_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(SubmissionRow).where(SubmissionRow.id == submission_id)
            )
            session.commit()
            return bool(result.rowcount)

    # Accounts

    def insert_account(self, record: AccountRecord) -> AccountRecord:
        now = utcnow()
        values = self._column_values(dataclasses.asdict(record))
        values.update(created_at=now, updated_at=now)
        with self.Session() as session:
            row = AccountRow(**values)
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Username already exists") from exc
            session.refresh(row)
            return self._to_account_record(row)

    def get_account(self, account_id: str) -> Optional[AccountRecord]:
        with self.Session() as session:
            row = session.get(AccountRow, account_id)
            if not row:
                return None
            return self._to_account_record(row)

    def get_account_by_username(self, username: str) -> Optional[AccountRecord]:
        with self.Session() as session:
            row = session.execute(
                select(AccountRow).where(AccountRow.username == username)
            ).scalar_one_or_none()
            if not row:
                return None
            return self._to_account_record(row)

    def list_accounts(self) -> list[AccountRecord]:
        with self.Session() as session:
            rows = (
                session.execute(select(AccountRow).order_by(AccountRow.created_at.asc()))
                .scalars()
                .all()
            )
            return [self._to_account_record(row) for row in rows]

    def update_account(self, account_id: str, **fields: Any) -> Optional[AccountRecord]:
        with self.Session() as session:
            row = session.get(AccountRow, account_id)
            if not row:
                return None
            for key, value in self._column_values(fields).items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Username already exists") from exc
            session.refresh(row)
            return self._to_account_record(row)

    def delete_account(self, account_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(delete(AccountRow).where(AccountRow.id == account_id))
            session.commit()
            return bool(result.rowcount)


Base = declarative_base()


class SubmissionRow(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True)
    photo_url = Column(Text, nullable=True)
    message = Column(Text, nullable=True)
    username = Column(String, nullable=True)
    email = Column(String, nullable=True)
    status = Column(String, nullable=False, index=True)
    displayed = Column(Boolean, nullable=False, default=False, index=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    uploaded_by = Column(String, nullable=True, index=True)
    upload_source = Column(String, nullable=False, default=UploadSource.PUBLIC.value)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class AccountRow(Base):
    __tablename__ = "accounts"

    id = Column(String, primary_key=True)
    username = Column(String, nullable=False, unique=True)
    password_hash = Column("password", String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    role = Column(String, nullable=False, default=AccountRole.PHOTOGRAPHER.value)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
