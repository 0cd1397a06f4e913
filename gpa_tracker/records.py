"""
Academic record: semesters of subjects and the SGPA / CGPA derived from them.

The record is a plain in-memory model. Persistence and autosave live in
``storage`` and ``gradebook``; nothing here touches the store.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from gpa_tracker.backend_logic import (
    DEFAULT_CREDITS,
    DEFAULT_GRADE,
    credit_value,
    grade_point_average,
    points_for,
    year_for_semester,
)
from gpa_tracker.errors import ConfirmationRequired, CorruptState, InvalidInput

logger = logging.getLogger(__name__)

SUBJECT_FIELDS = ("name", "grade", "credits")


@dataclass
class Subject:
    name: str = ""
    grade: str = DEFAULT_GRADE
    credits: int = DEFAULT_CREDITS

    @property
    def points(self) -> int:
        return points_for(self.grade) * credit_value(self.credits)

    def to_dict(self) -> dict:
        return {"name": self.name, "grade": self.grade, "credits": self.credits}

    @classmethod
    def from_dict(cls, data: dict) -> "Subject":
        if not isinstance(data, dict):
            raise CorruptState(f"subject must be an object, got {type(data).__name__}")
        return cls(
            name=data.get("name", ""),
            grade=data.get("grade", DEFAULT_GRADE),
            credits=credit_value(data["credits"]) if "credits" in data else DEFAULT_CREDITS,
        )


@dataclass
class Semester:
    year: int = 1
    subjects: List[Subject] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"year": self.year, "subjects": [s.to_dict() for s in self.subjects]}

    @classmethod
    def from_dict(cls, data: dict, number: int) -> "Semester":
        """Rebuild a semester; ``number`` is its 1-based position, used when year is missing."""
        if not isinstance(data, dict):
            raise CorruptState(f"semester must be an object, got {type(data).__name__}")
        subjects = data.get("subjects") or []
        if not isinstance(subjects, list):
            raise CorruptState("semester subjects must be a list")
        return cls(
            year=data.get("year") or year_for_semester(number),
            subjects=[Subject.from_dict(s) for s in subjects],
        )


@dataclass
class AcademicRecord:
    semesters: List[Semester] = field(default_factory=lambda: [Semester()])
    current_semester: int = 1

    # ------------------------
    # Constructors
    # ------------------------
    @classmethod
    def empty(cls) -> "AcademicRecord":
        return cls(semesters=[Semester(year=1)], current_semester=1)

    @classmethod
    def default(cls) -> "AcademicRecord":
        """First-login record: one semester holding one blank subject."""
        return cls(semesters=[Semester(year=1, subjects=[Subject()])], current_semester=1)

    # ------------------------
    # Accessors
    # ------------------------
    @property
    def semester(self) -> Semester:
        return self.semesters[self.current_semester - 1]

    @property
    def subjects(self) -> List[Subject]:
        return self.semester.subjects

    def total_subjects(self) -> int:
        return sum(len(s.subjects) for s in self.semesters)

    # ------------------------
    # Mutations
    # ------------------------
    def add_subject(self) -> Subject:
        subject = Subject()
        self.subjects.append(subject)
        return subject

    def _in_range(self, index: int) -> bool:
        return isinstance(index, int) and 0 <= index < len(self.subjects)

    def delete_subject(self, index: int) -> bool:
        if not self._in_range(index):
            logger.warning(
                f"delete_subject ignored: index {index} outside semester {self.current_semester} "
                f"({len(self.subjects)} subjects)"
            )
            return False
        del self.subjects[index]
        return True

    def update_subject(self, field_name: str, value, index: int) -> bool:
        """Set one of name / grade / credits on the subject at ``index``.

        Values arrive already coerced (credits as int); nothing is clamped.
        """
        if field_name not in SUBJECT_FIELDS:
            raise InvalidInput(f"Unknown subject field: {field_name!r}")
        if not self._in_range(index):
            logger.warning(
                f"update_subject ignored: index {index} outside semester {self.current_semester}"
            )
            return False
        setattr(self.subjects[index], field_name, value)
        return True

    def switch_semester(self, number: int) -> bool:
        if not isinstance(number, int) or not 1 <= number <= len(self.semesters):
            logger.warning(
                f"switch_semester ignored: {number} not in 1..{len(self.semesters)}"
            )
            return False
        self.current_semester = number
        return True

    def add_new_semester(self) -> Semester:
        number = len(self.semesters) + 1
        semester = Semester(year=year_for_semester(number))
        self.semesters.append(semester)
        self.current_semester = len(self.semesters)
        return semester

    def clear_current_semester(self) -> None:
        self.semester.subjects = []

    def import_subjects(self, subjects: List[Subject], replace: bool = False) -> int:
        if replace:
            self.clear_current_semester()
        self.subjects.extend(subjects)
        return len(subjects)

    def reset_all(self, confirmed: bool = False) -> None:
        if not confirmed:
            raise ConfirmationRequired("Reset all semesters and marks?")
        self.semesters = [Semester(year=1)]
        self.current_semester = 1

    # ------------------------
    # Calculations
    # ------------------------
    def compute_sgpa(self) -> float:
        sgpa, _ = grade_point_average((s.grade, s.credits) for s in self.subjects)
        return sgpa

    def semester_summary(self) -> Dict:
        sgpa, total_credits = grade_point_average((s.grade, s.credits) for s in self.subjects)
        return {
            "semester": self.current_semester,
            "year": self.semester.year,
            "sgpa": sgpa,
            "total_credits": total_credits,
        }

    def compute_cgpa(self) -> Dict:
        """
        CGPA over every subject of every semester, with the summary stats.

        Returns
        -------
        dict
            cgpa, total_credits, semester_count (semesters holding at least
            one subject) and subject_count.
        """
        cgpa, total_credits = grade_point_average(
            (s.grade, s.credits) for sem in self.semesters for s in sem.subjects
        )
        return {
            "cgpa": cgpa,
            "total_credits": total_credits,
            "semester_count": sum(1 for sem in self.semesters if sem.subjects),
            "subject_count": self.total_subjects(),
        }

    # ------------------------
    # Serialisation
    # ------------------------
    def to_dict(self) -> dict:
        return {
            "semesters": [s.to_dict() for s in self.semesters],
            "currentSemester": self.current_semester,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AcademicRecord":
        if not isinstance(data, dict):
            raise CorruptState("record snapshot must be an object")
        raw_semesters = data.get("semesters") or []
        if not isinstance(raw_semesters, list):
            raise CorruptState("semesters must be a list")

        semesters = [Semester.from_dict(s, i + 1) for i, s in enumerate(raw_semesters)]
        if not semesters:
            semesters = [Semester(year=1)]

        current = data.get("currentSemester") or 1
        # bool is an int subclass; true is not a semester number
        valid = isinstance(current, int) and not isinstance(current, bool)
        if not valid or not 1 <= current <= len(semesters):
            logger.warning(f"Stored currentSemester {current!r} out of range, using 1")
            current = 1
        return cls(semesters=semesters, current_semester=current)
