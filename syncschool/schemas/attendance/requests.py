from datetime import date
from typing import List

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import AttendanceStatus


class AttendanceRecordIn(APIModel):
    student_id: int
    status: AttendanceStatus


class AttendanceCreate(APIModel):
    """The full roster for one class on one day; it replaces any earlier roster"""
    class_id: int
    date: date
    records: List[AttendanceRecordIn]
