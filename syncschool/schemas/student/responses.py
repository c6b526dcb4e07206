from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import AttendanceStatus, Gender, PaymentMethod, PaymentStatus, StudentStatus


class ClassSummary(APIModel):
    id: int
    name: str
    grade_level: int


class ScholarshipSummary(APIModel):
    id: int
    name: str
    percentage: float


class StudentResponse(APIModel):
    id: int
    school_id: int
    first_name: str
    last_name: str
    admission_number: str
    date_of_birth: date
    gender: Gender
    guardian_name: str
    guardian_phone: str
    guardian_email: Optional[str] = None
    address: Optional[str] = None
    status: StudentStatus
    class_id: int
    scholarship_id: Optional[int] = None
    parent_id: Optional[int] = None
    class_: Optional[ClassSummary] = Field(None, alias="class")
    created_at: datetime


class StudentPaymentSummary(APIModel):
    id: int
    transaction_id: str
    amount: float
    method: PaymentMethod
    status: PaymentStatus
    payment_date: datetime


class StudentAttendanceSummary(APIModel):
    id: int
    date: date
    status: AttendanceStatus


class StudentDetailResponse(StudentResponse):
    scholarship: Optional[ScholarshipSummary] = None
    payments: List[StudentPaymentSummary] = []
    attendance: List[StudentAttendanceSummary] = []


class ImportRowError(APIModel):
    row: int
    error: str


class StudentImportResponse(APIModel):
    message: str
    count: int
    skipped: int
    errors: List[ImportRowError] = []
