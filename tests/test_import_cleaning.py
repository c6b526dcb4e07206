import pytest

from syncschool.utils.import_cleaning import (
    DEFAULT_DATE_OF_BIRTH,
    build_student_row,
    clean_name,
    normalize_grade,
    split_name,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("MWALE.joseph*", "Mwale Joseph"),
        ("  banda   CHISOMO ", "Banda Chisomo"),
        ("***", None),
        (None, None),
    ],
)
def test_clean_name(raw, expected):
    assert clean_name(raw) == expected


def test_split_name():
    assert split_name("Mwale Joseph Junior") == ("Mwale", "Joseph Junior")
    assert split_name("Chanda") == ("Chanda", "Chanda")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("RC", "Reception Class"),
        ("rec", "Reception Class"),
        (3, "Grade Three"),
        (7.0, "Grade Seven"),
        ("B", "Baby Class"),
        ("Grade", None),
        ("9", None),
        (float("nan"), None),
        ("", None),
    ],
)
def test_normalize_grade(raw, expected):
    assert normalize_grade(raw) == expected


def test_build_student_row_defaults():
    row = build_student_row({"NAME": "PHIRI.mary*", "GRADE": "2", "GENDER": "f"})
    assert row == {
        "first_name": "Phiri",
        "last_name": "Mary",
        "admission_number": None,
        "date_of_birth": DEFAULT_DATE_OF_BIRTH.isoformat(),
        "gender": "FEMALE",
        "guardian_name": "",
        "guardian_phone": "",
        "address": None,
        "class_name": "Grade Two",
    }


def test_build_student_row_skips_unusable_rows():
    assert build_student_row({"NAME": "", "GRADE": "2"}) is None
    assert build_student_row({"NAME": "Tembo Kondwani", "GRADE": "Class"}) is None
    assert build_student_row({"NAME": "Tembo Kondwani", "GRADE": "X"}) is None


def test_build_student_row_whole_number_admission():
    row = build_student_row({"NAME": "Banda John", "GRADE": 3, "ADMISSION_NUMBER": 1001.0})
    assert row["admission_number"] == "1001"
