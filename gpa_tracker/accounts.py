import logging
from typing import List

from gpa_tracker import storage
from gpa_tracker.errors import (
    AdminImmutable,
    AlreadyExists,
    InvalidCredentials,
    InvalidInput,
    NotApproved,
    NotFound,
)
from gpa_tracker.models import ADMIN_USERNAME, ROLE_ADMIN, ROLE_STUDENT, Account, LoginLogEntry
from gpa_tracker.storage import KeyValueStore

logger = logging.getLogger(__name__)


class AccountDirectory:
    """Registered accounts, read from and written back to the store on every call."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def accounts(self) -> List[Account]:
        return storage.load_accounts(self.store)

    def login_logs(self) -> List[LoginLogEntry]:
        return storage.load_login_logs(self.store)

    def register(self, username: str, password: str) -> Account:
        username = (username or "").strip()
        password = (password or "").strip()
        if not username or not password:
            raise InvalidInput("Username & password required")

        accounts = self.accounts()
        if any(a.username == username for a in accounts):
            raise AlreadyExists("User already exists")

        role = ROLE_ADMIN if username == ADMIN_USERNAME else ROLE_STUDENT
        account = Account(
            username=username,
            password=password,
            role=role,
            approved=role == ROLE_ADMIN,
        )
        accounts.append(account)
        storage.save_accounts(self.store, accounts)
        logger.info(f"Registered {username} as {role} (approved={account.approved})")
        return account

    def authenticate(self, username: str, password: str) -> Account:
        username = (username or "").strip()
        password = (password or "").strip()

        account = next(
            (a for a in self.accounts() if a.username == username and a.password == password),
            None,
        )
        if account is None:
            logger.info(f"Failed login for {username!r}")
            raise InvalidCredentials("Invalid username or password")
        if not account.approved and not account.is_admin:
            logger.info(f"Login refused for unapproved account {username}")
            raise NotApproved("Your account is not approved by admin yet.")
        return account

    def toggle_approval(self, index: int) -> Account:
        accounts = self.accounts()
        if not isinstance(index, int) or not 0 <= index < len(accounts):
            raise NotFound(f"No account at position {index}")

        account = accounts[index]
        if account.is_admin:
            raise AdminImmutable("Admin account cannot be changed.")

        account.approved = not account.approved
        storage.save_accounts(self.store, accounts)
        logger.info(
            f"{account.username} is now {'APPROVED' if account.approved else 'BLOCKED'} by admin"
        )
        return account
