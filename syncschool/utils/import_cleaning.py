"""
Normalisation of hand-typed student spreadsheets.

Registers exported from school offices carry names such as ``"MWALE.j*"``
and grade codes such as ``"RC"`` or ``3``. These helpers turn a row into
clean first/last names and a class name that can be matched against the
school's classes.
"""
import re
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

GRADE_MAPPING = {
    "B": "Baby Class",
    "DC": "Day Care",
    "MC": "Middle Class",
    "RC": "Reception Class",
    "REC": "Reception Class",
    "1": "Grade One",
    "2": "Grade Two",
    "3": "Grade Three",
    "4": "Grade Four",
    "5": "Grade Five",
    "6": "Grade Six",
    "7": "Grade Seven",
}

# Header rows repeated inside the sheet
HEADER_GRADE_VALUES = {"grade", "class"}

DEFAULT_DATE_OF_BIRTH = date(2010, 1, 1)
DEFAULT_GENDER = "MALE"


def clean_name(name: Any) -> Optional[str]:
    if name is None:
        return None
    text = str(name).replace("*", "").replace(".", " ")
    text = re.sub(r"\s+", " ", text).strip()
    if not text:
        return None
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


def split_name(full_name: str) -> Tuple[str, str]:
    """First word is the first name, the rest is the last name"""
    parts = [p for p in full_name.split(" ") if p]
    if not parts:
        return "Unknown", "Unknown"
    if len(parts) == 1:
        return parts[0], parts[0]
    return parts[0], " ".join(parts[1:])


def normalize_grade(raw: Any) -> Optional[str]:
    """Spreadsheet grade cell to a class name, or None when it cannot be mapped"""
    if raw is None:
        return None
    if isinstance(raw, float):
        if raw != raw:  # NaN from pandas
            return None
        if raw.is_integer():
            raw = int(raw)
    grade = str(raw).strip()
    if not grade or grade.lower() in HEADER_GRADE_VALUES:
        return None
    return GRADE_MAPPING.get(grade.upper(), None)


def _cell(row: Dict[str, Any], key: str) -> Optional[str]:
    value = row.get(key)
    if value is None or (isinstance(value, float) and value != value):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        # Numeric columns with blanks come back from pandas as float64
        value = int(value)
    value = str(value).strip()
    return value or None


def build_student_row(row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Map one spreadsheet row (keys upper-cased) to student fields.

    Returns None for rows to skip silently: blank names, blank or header
    grades, and grade codes with no known class.
    """
    cleaned = clean_name(_cell(row, "NAME"))
    if not cleaned:
        return None
    class_name = normalize_grade(row.get("GRADE"))
    if class_name is None:
        return None

    first_name, last_name = split_name(cleaned)
    gender = (_cell(row, "GENDER") or DEFAULT_GENDER).upper()
    if gender in ("M", "F"):
        gender = "MALE" if gender == "M" else "FEMALE"

    return {
        "first_name": first_name,
        "last_name": last_name,
        "admission_number": _cell(row, "ADMISSION_NUMBER"),
        "date_of_birth": _cell(row, "DATE_OF_BIRTH") or DEFAULT_DATE_OF_BIRTH.isoformat(),
        "gender": gender,
        "guardian_name": _cell(row, "GUARDIAN_NAME") or "",
        "guardian_phone": _cell(row, "GUARDIAN_PHONE") or "",
        "address": _cell(row, "ADDRESS"),
        "class_name": class_name,
    }
