from datetime import date
from typing import List, Optional

from syncschool.schemas.common import APIModel


class AcademicTermResponse(APIModel):
    id: int
    school_id: int
    name: str
    start_date: date
    end_date: date
    is_active: bool


class SubjectResponse(APIModel):
    id: int
    school_id: int
    name: str
    code: str


class TeacherSummary(APIModel):
    id: int
    full_name: str


class TermSummary(APIModel):
    id: int
    name: str


class ClassResponse(APIModel):
    id: int
    school_id: int
    name: str
    grade_level: int
    teacher_id: int
    academic_term_id: int
    teacher: Optional[TeacherSummary] = None
    academic_term: Optional[TermSummary] = None
    subjects: List[SubjectResponse] = []
    student_count: int = 0


class BulkClassResponse(APIModel):
    message: str
    count: int
    skipped: int
