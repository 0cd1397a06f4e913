import pytest

from gpa_tracker.accounts import AccountDirectory
from gpa_tracker.gradebook import GradeBook
from gpa_tracker.session import SessionContext
from gpa_tracker.storage import MemoryStore


class CountingStore(MemoryStore):
    """MemoryStore that remembers which keys were written, in order."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.written = []

    def set(self, key, value):
        self.written.append(key)
        super().set(key, value)

    def writes_to(self, key):
        return self.written.count(key)


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def directory(store):
    return AccountDirectory(store)


@pytest.fixture
def bob_session(store, directory):
    directory.register("admin", "root")
    directory.register("bob", "pw")
    directory.toggle_approval(1)
    session = SessionContext(store)
    session.login(directory.authenticate("bob", "pw"))
    return session


@pytest.fixture
def gradebook(store, bob_session):
    book = GradeBook(store, bob_session, autosave_delay=0.1)
    book.load()
    yield book
    book._autosave.cancel()
