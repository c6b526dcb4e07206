from datetime import date
from typing import Optional

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import AttendanceStatus


class AttendanceStudent(APIModel):
    id: int
    first_name: str
    last_name: str
    admission_number: str


class AttendanceResponse(APIModel):
    id: int
    class_id: int
    student_id: int
    date: date
    status: AttendanceStatus
    recorded_by_user_id: Optional[int] = None
    student: Optional[AttendanceStudent] = None
