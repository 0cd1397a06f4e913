import pandas as pd
from typing import List

from gpa_tracker.backend_logic import DEFAULT_GRADE, points_for
from gpa_tracker.errors import InvalidInput
from gpa_tracker.records import AcademicRecord, Subject

# ------------------------
# CSV helpers (UI-side)
# ------------------------

SUBJECT_COLUMNS = ["Subject", "Grade", "Credits"]


def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    # allow singular "credit" and "subject" for the name column
    if "credit" in df.columns and "credits" not in df.columns:
        df = df.rename(columns={"credit": "credits"})
    if "subject" in df.columns and "name" not in df.columns:
        df = df.rename(columns={"subject": "name"})
    return df


def read_csv_upload(uploaded_file) -> pd.DataFrame:
    df = pd.read_csv(uploaded_file)
    return _normalise_cols(df)


def validate_subjects_csv(df: pd.DataFrame) -> pd.DataFrame:
    required = {"name", "grade", "credits"}
    missing = required - set(df.columns)
    if missing:
        raise InvalidInput(f"Missing columns: {sorted(missing)}. Expected: Subject, Grade, Credits.")
    out = df[["name", "grade", "credits"]].copy()
    out = out.rename(columns={"name": "Subject", "grade": "Grade", "credits": "Credits"})
    return out


def coerce_credits(value):
    """
    Credit hours as typed by the user -> int, or None when it is not a number.
    "4", 4.0 and " 4 " all give 4.
    """
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return None


def parse_subjects(df: pd.DataFrame) -> List[Subject]:
    """
    Rows of Subject / Grade / Credits -> Subject objects.
    Rows without usable credits are dropped; a blank grade becomes the default.
    """
    rows = []
    for _, row in df.iterrows():
        name = row.get("Subject")
        grade = row.get("Grade")
        credits = coerce_credits(row.get("Credits"))
        if credits is None:
            continue
        name = "" if pd.isna(name) else str(name).strip()
        grade = DEFAULT_GRADE if pd.isna(grade) or not str(grade).strip() else str(grade).strip().upper()
        rows.append(Subject(name=name, grade=grade, credits=credits))
    return rows


def subjects_to_frame(subjects: List[Subject]) -> pd.DataFrame:
    df = pd.DataFrame(
        [{"Subject": s.name, "Grade": s.grade, "Credits": s.credits} for s in subjects],
        columns=SUBJECT_COLUMNS,
    )
    return df


def record_to_frame(record: AcademicRecord) -> pd.DataFrame:
    """Every subject of every semester, one row each, for export."""
    rows = []
    for number, semester in enumerate(record.semesters, start=1):
        for s in semester.subjects:
            rows.append(
                {
                    "Semester": number,
                    "Year": semester.year,
                    "Subject": s.name,
                    "Grade": s.grade,
                    "Credits": s.credits,
                    "Points": points_for(s.grade) * (s.credits or 0),
                }
            )
    return pd.DataFrame(rows, columns=["Semester", "Year", "Subject", "Grade", "Credits", "Points"])
