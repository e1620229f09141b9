"""
Photographer and admin accounts: creation, updates and password login.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from livewall.db import Account, AccountRecord, AccountRole, AccountStore, new_id
from livewall.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from livewall.passwords import PasswordHasher

logger = logging.getLogger(__name__)

# Same text for unknown users and wrong passwords so usernames can't be probed.
INVALID_CREDENTIALS = "Invalid username or password"
ACCOUNT_INACTIVE = "Account is inactive. Contact administrator."

UPDATABLE_FIELDS = ("username", "password", "is_active", "role")


def normalize_username(username: Optional[str]) -> str:
    return (username or "").strip()


@dataclass
class LoginProfile:
    id: str
    username: str
    is_active: bool
    role: AccountRole


class AccountService:
    def __init__(self, store: AccountStore, hasher: PasswordHasher):
        self.store = store
        self.hasher = hasher

    def _insert(
        self, username: str, password: str, role: AccountRole, is_active: bool
    ) -> Account:
        username = normalize_username(username)
        if not username or not password:
            raise ValidationError("username and password are required")
        if self.store.get_account_by_username(username):
            raise ConflictError("Username already exists")
        record = AccountRecord(
            id=new_id(),
            username=username,
            password_hash=self.hasher.hash(password),
            is_active=is_active,
            role=role,
        )
        created = self.store.insert_account(record)
        logger.info("Created %s account %s", created.role.value, created.username)
        return created.to_account()

    def create(
        self,
        username: str,
        password: str,
        role: AccountRole = AccountRole.PHOTOGRAPHER,
        is_active: bool = True,
    ) -> Account:
        return self._insert(username, password, role, is_active)

    def create_admin(self, username: str, password: str) -> Account:
        return self._insert(username, password, AccountRole.ADMIN, True)

    def list_accounts(self) -> list[Account]:
        return [record.to_account() for record in self.store.list_accounts()]

    def get(self, account_id: str) -> Account:
        record = self.store.get_account(account_id)
        if not record:
            raise NotFoundError("User not found")
        return record.to_account()

    def find_by_username(self, username: str) -> Optional[AccountRecord]:
        """Full record including the password hash, for credential checks."""
        return self.store.get_account_by_username(normalize_username(username))

    def update(self, account_id: str, **changes: Any) -> Account:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not self.store.get_account(account_id):
            raise NotFoundError("User not found")

        fields = {key: value for key, value in changes.items() if value is not None}
        if "username" in fields:
            fields["username"] = normalize_username(fields["username"])
            if not fields["username"]:
                raise ValidationError("username must not be empty")
            existing = self.store.get_account_by_username(fields["username"])
            if existing and existing.id != account_id:
                raise ConflictError("Username already exists")
        if "password" in fields:
            fields["password_hash"] = self.hasher.hash(fields.pop("password"))
        if "role" in fields:
            try:
                fields["role"] = AccountRole(fields["role"])
            except ValueError:
                raise ValidationError("role must be photographer or admin") from None

        updated = self.store.update_account(account_id, **fields)
        if not updated:
            raise NotFoundError("User not found")
        return updated.to_account()

    def delete(self, account_id: str) -> None:
        if not self.store.delete_account(account_id):
            raise NotFoundError("User not found")
        logger.info("Deleted account %s", account_id)

    def login(self, username: str, password: str) -> LoginProfile:
        record = self.find_by_username(username)
        if not record:
            logger.info("Login failed for unknown user")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not record.is_active:
            raise ForbiddenError(ACCOUNT_INACTIVE)
        if not self.hasher.verify(password, record.password_hash):
            logger.info("Login failed for %s", record.username)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return LoginProfile(
            id=record.id,
            username=record.username,
            is_active=record.is_active,
            role=record.role,
        )
