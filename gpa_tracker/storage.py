"""
Key-value persistence for accounts, login logs, the session mirror and
per-user academic records.

Every value is JSON text under a string key, the same layout the tracker has
always kept in browser local storage:

    users                  -> [Account, ...]
    currentUser[_<token>]  -> Account (absent when logged out)
    loginLogs              -> [{"username", "time"}, ...]
    marks_<username>       -> {"semesters", "currentSemester", "timestamp"}

Readers never raise on bad data: anything that does not decode into the
expected shape is logged and replaced with the empty/default value.
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from gpa_tracker.errors import CorruptState
from gpa_tracker.models import Account, LoginLogEntry, now_iso
from gpa_tracker.records import AcademicRecord

logger = logging.getLogger(__name__)

USERS_KEY = "users"
CURRENT_USER_KEY = "currentUser"
LOGIN_LOGS_KEY = "loginLogs"
RECORD_KEY_PREFIX = "marks_"


def record_key(username: str) -> str:
    return RECORD_KEY_PREFIX + username


# ------------------------
# Backends
# ------------------------
class KeyValueStore:
    """String-to-string store; subclasses provide the backing."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    All keys kept in a single JSON object on disk.

    The file is re-read on every access so a second app instance sees the
    latest writes; writes replace the file atomically.
    """

    def __init__(self, path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError, RecursionError) as e:
            logger.warning(f"Store file {self.path} unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Store file {self.path} is not a JSON object, starting empty")
            return {}
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".gpa-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key):
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key, value):
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key):
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


# ------------------------
# Helpers
# ------------------------
def _decode(store: KeyValueStore, key: str):
    raw = store.get(key)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise CorruptState(f"{key}: {e}") from e


def _load_list(store: KeyValueStore, key: str, factory) -> list:
    try:
        data = _decode(store, key)
    except CorruptState as e:
        logger.warning(f"Corrupt value under {key!r}, using empty list: {e}")
        return []
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning(f"Value under {key!r} is not a list, using empty list")
        return []

    items = []
    for entry in data:
        try:
            items.append(factory(entry))
        except CorruptState as e:
            logger.warning(f"Skipping bad entry under {key!r}: {e}")
    return items


def _dump(store: KeyValueStore, key: str, value) -> None:
    store.set(key, json.dumps(value))


# ------------------------
# Academic records
# ------------------------
def load_record(store: KeyValueStore, username: str) -> AcademicRecord:
    key = record_key(username)
    try:
        data = _decode(store, key)
        if data is None:
            logger.info(f"No saved marks for {username}, starting a fresh record")
            return AcademicRecord.default()
        return AcademicRecord.from_dict(data)
    except CorruptState as e:
        logger.warning(f"Corrupt marks for {username}, starting a fresh record: {e}")
        return AcademicRecord.default()


def save_record(store: KeyValueStore, username: str, record: AcademicRecord) -> None:
    snapshot = record.to_dict()
    snapshot["timestamp"] = now_iso()
    _dump(store, record_key(username), snapshot)
    logger.debug(f"Saved {record.total_subjects()} subjects for {username}")


def clear_record(store: KeyValueStore, username: str) -> None:
    store.remove(record_key(username))
    logger.info(f"Deleted saved marks for {username}")


# ------------------------
# Accounts
# ------------------------
def load_accounts(store: KeyValueStore) -> List[Account]:
    return _load_list(store, USERS_KEY, Account.from_dict)


def save_accounts(store: KeyValueStore, accounts: List[Account]) -> None:
    _dump(store, USERS_KEY, [a.to_dict() for a in accounts])


# ------------------------
# Login log
# ------------------------
def load_login_logs(store: KeyValueStore) -> List[LoginLogEntry]:
    return _load_list(store, LOGIN_LOGS_KEY, LoginLogEntry.from_dict)


def append_login_log(
    store: KeyValueStore, username: str, when: Optional[datetime] = None
) -> LoginLogEntry:
    logs = load_login_logs(store)
    entry = LoginLogEntry.now(username, when)
    logs.append(entry)
    _dump(store, LOGIN_LOGS_KEY, [log.to_dict() for log in logs])
    return entry


# ------------------------
# Session mirror
# ------------------------
def session_key(token: Optional[str] = None) -> str:
    """Mirror key for one browser; without a token the single shared key."""
    return f"{CURRENT_USER_KEY}_{token}" if token else CURRENT_USER_KEY


def load_session(store: KeyValueStore, key: str = CURRENT_USER_KEY) -> Optional[Account]:
    try:
        data = _decode(store, key)
        if data is None:
            return None
        return Account.from_dict(data)
    except CorruptState as e:
        logger.warning(f"Corrupt session mirror, treating as logged out: {e}")
        return None


def save_session(store: KeyValueStore, account: Account, key: str = CURRENT_USER_KEY) -> None:
    _dump(store, key, account.to_dict())


def clear_session(store: KeyValueStore, key: str = CURRENT_USER_KEY) -> None:
    store.remove(key)
