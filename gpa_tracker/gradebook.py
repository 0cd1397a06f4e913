"""
GradeBook: the academic record of the logged-in user, kept in sync with the
store.

Edits go through the GradeBook, which forwards them to the record and
schedules a debounced save so a burst of edits ends up as a single write.
"""

import logging
import threading
import weakref
from typing import Callable, Dict, List, Optional

from gpa_tracker import storage
from gpa_tracker.config import settings
from gpa_tracker.errors import ConfirmationRequired
from gpa_tracker.records import AcademicRecord, Semester, Subject
from gpa_tracker.session import SessionContext
from gpa_tracker.storage import KeyValueStore

logger = logging.getLogger(__name__)

# every GradeBook still referenced somewhere, for the shutdown flush
_live: "weakref.WeakSet[GradeBook]" = weakref.WeakSet()


def flush_all() -> int:
    """Write every live GradeBook that has an autosave pending; returns how many wrote."""
    written = 0
    for gradebook in list(_live):
        if gradebook.save_pending and gradebook.flush():
            written += 1
    if written:
        logger.info(f"Flushed {written} gradebooks")
    return written


class Debouncer:
    """
    Run ``callback`` once ``delay`` seconds after the last ``trigger()``.

    Only one timer is ever pending: each trigger cancels the previous one.
    """

    def __init__(self, delay: float, callback: Callable[[], object]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        with self._lock:
            # a timer superseded by a later trigger or a cancel must not run
            if self._timer is not threading.current_thread():
                return
            self._timer = None
        self.callback()


class GradeBook:
    def __init__(
        self,
        store: KeyValueStore,
        session: SessionContext,
        autosave_delay: Optional[float] = None,
    ):
        self.store = store
        self.session = session
        self.record = AcademicRecord.default()
        if autosave_delay is None:
            autosave_delay = settings.AUTOSAVE_DELAY_SECONDS
        self._autosave = Debouncer(autosave_delay, self.save)
        self._save_lock = threading.Lock()
        _live.add(self)

    # ------------------------
    # Loading / saving
    # ------------------------
    def load(self) -> AcademicRecord:
        """Swap in the stored record of the session user (a fresh one when logged out)."""
        self._autosave.cancel()
        username = self.session.username
        if username is None:
            self.record = AcademicRecord.default()
        else:
            self.record = storage.load_record(self.store, username)
            logger.info(
                f"Loaded {len(self.record.semesters)} semesters "
                f"({self.record.total_subjects()} subjects) for {username}"
            )
        return self.record

    def save(self) -> bool:
        username = self.session.username
        if username is None:
            return False
        with self._save_lock:
            storage.save_record(self.store, username, self.record)
        return True

    def autosave(self) -> None:
        self._autosave.trigger()

    @property
    def save_pending(self) -> bool:
        return self._autosave.pending

    def flush(self) -> bool:
        """Write now, ahead of any pending autosave (page unload / logout)."""
        self._autosave.cancel()
        return self.save()

    def clear_saved_data(self, confirmed: bool = False) -> bool:
        username = self.session.username
        if username is None:
            return False
        if not confirmed:
            raise ConfirmationRequired(f"Delete all saved marks for {username}?")
        self._autosave.cancel()
        storage.clear_record(self.store, username)
        self.record.reset_all(confirmed=True)
        return True

    # ------------------------
    # Edits
    # ------------------------
    def add_subject(self) -> Subject:
        subject = self.record.add_subject()
        self.autosave()
        return subject

    def delete_subject(self, index: int) -> bool:
        changed = self.record.delete_subject(index)
        if changed:
            self.autosave()
        return changed

    def update_subject(self, field_name: str, value, index: int) -> bool:
        changed = self.record.update_subject(field_name, value, index)
        if changed:
            self.autosave()
        return changed

    def switch_semester(self, number: int) -> bool:
        return self.record.switch_semester(number)

    def add_new_semester(self) -> Semester:
        semester = self.record.add_new_semester()
        self.autosave()
        return semester

    def clear_current_semester(self) -> None:
        self.record.clear_current_semester()
        self.autosave()

    def import_subjects(self, subjects: List[Subject], replace: bool = False) -> int:
        count = self.record.import_subjects(subjects, replace=replace)
        self.autosave()
        return count

    def reset_all(self, confirmed: bool = False) -> None:
        self.record.reset_all(confirmed=confirmed)
        self._autosave.cancel()
        self.save()

    # ------------------------
    # Results
    # ------------------------
    def compute_sgpa(self) -> Dict:
        return self.record.semester_summary()

    def compute_cgpa(self) -> Dict:
        summary = self.record.compute_cgpa()
        self.autosave()
        return summary
