import logging
from typing import Optional

from gpa_tracker import storage
from gpa_tracker.models import Account
from gpa_tracker.storage import KeyValueStore

logger = logging.getLogger(__name__)


class SessionContext:
    """
    The currently logged-in account, if any.

    Mirrored into the store so a reload picks the same session back up
    without logging in again. ``token`` identifies one browser; each token
    gets its own ``currentUser_<token>`` key so browsers sharing a store do
    not see each other's sessions.
    """

    def __init__(
        self,
        store: KeyValueStore,
        account: Optional[Account] = None,
        token: Optional[str] = None,
    ):
        self.store = store
        self.account = account
        self.mirror_key = storage.session_key(token)

    @classmethod
    def resume(cls, store: KeyValueStore, token: Optional[str] = None) -> "SessionContext":
        session = cls(store, token=token)
        session.account = storage.load_session(store, session.mirror_key)
        if session.account is not None:
            logger.info(f"Resumed session for {session.account.username}")
        return session

    @property
    def is_authenticated(self) -> bool:
        return self.account is not None

    @property
    def is_admin(self) -> bool:
        return self.account is not None and self.account.is_admin

    @property
    def username(self) -> Optional[str]:
        return self.account.username if self.account else None

    def login(self, account: Account) -> None:
        self.account = account
        storage.save_session(self.store, account, self.mirror_key)
        storage.append_login_log(self.store, account.username)
        logger.info(f"{account.username} logged in ({account.role})")

    def logout(self) -> None:
        if self.account is not None:
            logger.info(f"{self.account.username} logged out")
        self.account = None
        storage.clear_session(self.store, self.mirror_key)
