import json
from datetime import datetime, timezone

import pytest

from gpa_tracker import storage
from gpa_tracker.models import Account
from gpa_tracker.records import AcademicRecord, Semester, Subject
from gpa_tracker.storage import JsonFileStore, MemoryStore


@pytest.fixture(params=["memory", "file"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return JsonFileStore(tmp_path / "store.json")


def test_missing_record_is_default(any_store):
    record = storage.load_record(any_store, "bob")
    assert record == AcademicRecord.default()


def test_save_then_load_record(any_store):
    record = AcademicRecord(
        semesters=[
            Semester(year=1, subjects=[Subject("Maths", "A", 4), Subject("Art", "C+", 2)]),
            Semester(year=1, subjects=[]),
            Semester(year=2, subjects=[Subject("Chem", "O", 3)]),
        ],
        current_semester=3,
    )
    storage.save_record(any_store, "bob", record)
    assert storage.load_record(any_store, "bob") == record


def test_record_snapshot_layout():
    store = MemoryStore()
    storage.save_record(store, "bob", AcademicRecord.default())
    data = json.loads(store.get("marks_bob"))
    assert set(data) == {"semesters", "currentSemester", "timestamp"}
    assert data["semesters"] == [{"year": 1, "subjects": [{"name": "", "grade": "O", "credits": 4}]}]
    assert data["timestamp"].endswith("Z")


def test_records_are_per_user():
    store = MemoryStore()
    alice = AcademicRecord.empty()
    alice.add_new_semester()
    storage.save_record(store, "alice", alice)
    assert storage.load_record(store, "bob") == AcademicRecord.default()
    assert len(storage.load_record(store, "alice").semesters) == 2


@pytest.mark.parametrize(
    "raw",
    ["{not json", "[1, 2]", '{"semesters": 5}', '{"semesters": [{"subjects": [7]}]}', '"text"'],
)
def test_corrupt_record_degrades_to_default(raw):
    store = MemoryStore({"marks_bob": raw})
    assert storage.load_record(store, "bob") == AcademicRecord.default()


def test_clear_record():
    store = MemoryStore()
    storage.save_record(store, "bob", AcademicRecord.empty())
    storage.clear_record(store, "bob")
    assert store.get("marks_bob") is None


def test_accounts_round_trip(any_store):
    accounts = [Account("admin", "x", "admin", True), Account("bob", "pw")]
    storage.save_accounts(any_store, accounts)
    assert storage.load_accounts(any_store) == accounts


@pytest.mark.parametrize("raw", ["oops", '{"a": 1}', "42"])
def test_corrupt_accounts_are_empty(raw):
    assert storage.load_accounts(MemoryStore({"users": raw})) == []


def test_bad_account_entries_are_skipped():
    raw = json.dumps([{"username": "bob", "password": "pw"}, "junk", {"password": "x"}])
    accounts = storage.load_accounts(MemoryStore({"users": raw}))
    assert accounts == [Account("bob", "pw", "student", False)]


def test_login_log_appends():
    store = MemoryStore()
    when = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    storage.append_login_log(store, "bob", when)
    storage.append_login_log(store, "alice")

    logs = storage.load_login_logs(store)
    assert [log.username for log in logs] == ["bob", "alice"]
    assert logs[0].timestamp == "2024-05-01T09:30:00.000Z"
    assert json.loads(store.get("loginLogs"))[0] == {"username": "bob", "time": "2024-05-01T09:30:00.000Z"}


def test_corrupt_login_log_is_empty_and_recovers():
    store = MemoryStore({"loginLogs": "[broken"})
    assert storage.load_login_logs(store) == []
    storage.append_login_log(store, "bob")
    assert len(storage.load_login_logs(store)) == 1


def test_session_mirror(any_store):
    assert storage.load_session(any_store) is None
    account = Account("bob", "pw", "student", True)
    storage.save_session(any_store, account)
    assert storage.load_session(any_store) == account
    storage.clear_session(any_store)
    assert storage.load_session(any_store) is None


def test_corrupt_session_is_logged_out():
    assert storage.load_session(MemoryStore({"currentUser": "{{"})) is None


def test_file_store_persists_between_instances(tmp_path):
    path = tmp_path / "nested" / "store.json"
    JsonFileStore(path).set("k", "v")
    assert JsonFileStore(path).get("k") == "v"
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}


def test_file_store_tolerates_garbage_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("not json at all", encoding="utf-8")
    store = JsonFileStore(path)
    assert store.get("users") is None
    store.set("users", "[]")
    assert store.get("users") == "[]"


DEEPLY_NESTED = "[" * 100000


def test_deeply_nested_record_falls_back_to_default():
    store = MemoryStore({"marks_bob": DEEPLY_NESTED})
    assert storage.load_record(store, "bob") == AcademicRecord.default()


@pytest.mark.parametrize("loader", [storage.load_accounts, storage.load_login_logs])
def test_deeply_nested_lists_fall_back_to_empty(loader):
    store = MemoryStore({"users": DEEPLY_NESTED, "loginLogs": DEEPLY_NESTED})
    assert loader(store) == []


def test_deeply_nested_session_is_logged_out():
    assert storage.load_session(MemoryStore({"currentUser": DEEPLY_NESTED})) is None


def test_deeply_nested_store_file_starts_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_text(DEEPLY_NESTED, encoding="utf-8")
    assert JsonFileStore(path).get("users") is None


def test_session_key_per_token():
    assert storage.session_key() == "currentUser"
    assert storage.session_key("abc") == "currentUser_abc"


def test_session_mirrors_under_separate_keys():
    store = MemoryStore()
    bob = Account("bob", "pw", "student", True)
    storage.save_session(store, bob, storage.session_key("one"))

    assert storage.load_session(store, storage.session_key("one")) == bob
    assert storage.load_session(store, storage.session_key("two")) is None
    assert storage.load_session(store) is None
