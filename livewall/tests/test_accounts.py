import unittest
from dataclasses import asdict

from livewall.accounts import INVALID_CREDENTIALS, AccountService
from livewall.db import AccountRole, InMemoryDbClient
from livewall.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from livewall.passwords import PasswordHasher


class AccountServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.service = AccountService(self.db, PasswordHasher(rounds=4))

    def test_create_hashes_password(self):
        account = self.service.create("ana", "s3cret")
        self.assertEqual(account.role, AccountRole.PHOTOGRAPHER)
        self.assertTrue(account.is_active)
        self.assertNotIn("password_hash", asdict(account))

        stored = self.db.accounts[account.id]
        self.assertNotEqual(stored.password_hash, "s3cret")
        self.assertTrue(stored.password_hash.startswith("$2"))

    def test_duplicate_username_conflicts(self):
        self.service.create("ana", "one")
        with self.assertRaises(ConflictError):
            self.service.create("ana", "two")
        matching = [a for a in self.db.accounts.values() if a.username == "ana"]
        self.assertEqual(len(matching), 1)

    def test_create_admin_forces_role(self):
        admin = self.service.create_admin("root", "pw")
        self.assertEqual(admin.role, AccountRole.ADMIN)
        self.assertTrue(admin.is_active)
        with self.assertRaises(ConflictError):
            self.service.create_admin("root", "pw")

    def test_list_and_get(self):
        ana = self.service.create("ana", "pw")
        self.service.create("ben", "pw")
        self.assertEqual(
            sorted(a.username for a in self.service.list_accounts()), ["ana", "ben"]
        )
        self.assertEqual(self.service.get(ana.id).username, "ana")
        with self.assertRaises(NotFoundError):
            self.service.get("missing")

    def test_find_by_username_includes_hash(self):
        self.service.create("ana", "pw")
        record = self.service.find_by_username("ana")
        self.assertTrue(record.password_hash)
        self.assertIsNone(self.service.find_by_username("nobody"))

    def test_update_rehashes_password(self):
        account = self.service.create("ana", "old")
        old_hash = self.db.accounts[account.id].password_hash

        updated = self.service.update(account.id, password="new", is_active=False)
        self.assertFalse(updated.is_active)
        self.assertNotEqual(self.db.accounts[account.id].password_hash, old_hash)

        self.service.update(account.id, is_active=True)
        self.service.login("ana", "new")
        with self.assertRaises(UnauthorizedError):
            self.service.login("ana", "old")

    def test_update_errors(self):
        ana = self.service.create("ana", "pw")
        self.service.create("ben", "pw")
        with self.assertRaises(NotFoundError):
            self.service.update("missing", username="x")
        with self.assertRaises(ConflictError):
            self.service.update(ana.id, username="ben")
        with self.assertRaises(ValidationError):
            self.service.update(ana.id, role="owner")
        self.assertEqual(self.service.update(ana.id, username="ana").username, "ana")

    def test_delete(self):
        account = self.service.create("ana", "pw")
        self.service.delete(account.id)
        with self.assertRaises(NotFoundError):
            self.service.get(account.id)
        with self.assertRaises(NotFoundError):
            self.service.delete(account.id)

    def test_login_success_returns_profile(self):
        account = self.service.create("ana", "pw")
        profile = self.service.login("ana", "pw")
        self.assertEqual(profile.id, account.id)
        self.assertEqual(profile.role, AccountRole.PHOTOGRAPHER)
        self.assertEqual(
            set(asdict(profile)), {"id", "username", "is_active", "role"}
        )

    def test_login_failures_share_message(self):
        self.service.create("ana", "pw")
        with self.assertRaises(UnauthorizedError) as wrong_password:
            self.service.login("ana", "nope")
        with self.assertRaises(UnauthorizedError) as unknown_user:
            self.service.login("ghost", "pw")
        self.assertEqual(wrong_password.exception.message, INVALID_CREDENTIALS)
        self.assertEqual(unknown_user.exception.message, INVALID_CREDENTIALS)

    def test_login_normalizes_username(self):
        account = self.service.create(" ana ", "pw")
        self.assertEqual(account.username, "ana")
        self.assertEqual(self.service.login(" ana", "pw").id, account.id)
        self.assertEqual(self.service.login("ana ", "pw").id, account.id)
        self.assertEqual(self.service.find_by_username(" ana ").id, account.id)

    def test_inactive_account_is_forbidden(self):
        account = self.service.create("ana", "pw", is_active=False)
        self.assertFalse(account.is_active)
        with self.assertRaises(ForbiddenError):
            self.service.login("ana", "pw")


if __name__ == "__main__":
    unittest.main()
