from datetime import date
from typing import List, Optional

from pydantic import Field, model_validator

from syncschool.schemas.common import APIModel


class AcademicTermCreate(APIModel):
    name: str = Field(..., min_length=2, max_length=100)
    start_date: date
    end_date: date
    is_active: bool = False

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class AcademicTermUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class SubjectCreate(APIModel):
    name: str = Field(..., min_length=2, max_length=100)
    code: str = Field(..., min_length=2, max_length=20)


class SubjectUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    code: Optional[str] = Field(None, min_length=2, max_length=20)


class ClassCreate(APIModel):
    name: str = Field(..., min_length=2, max_length=100)
    grade_level: int = Field(..., ge=1, le=12)
    teacher_id: int
    academic_term_id: int
    subject_ids: Optional[List[int]] = None


class ClassUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    grade_level: Optional[int] = Field(None, ge=1, le=12)
    teacher_id: Optional[int] = None
    academic_term_id: Optional[int] = None
    subject_ids: Optional[List[int]] = None


class ClassBulkItem(APIModel):
    """Spreadsheet row; pre-school levels go down to -2"""
    name: str = Field(..., min_length=1, max_length=100)
    grade_level: int = Field(..., ge=-2, le=12)
    teacher_id: Optional[int] = None
    academic_term_id: Optional[int] = None


class AddStudentsRequest(APIModel):
    student_ids: List[int] = Field(..., min_length=1)
