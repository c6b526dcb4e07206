from datetime import datetime
from typing import List, Optional

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import PaymentMethod, PaymentStatus


class ScholarshipResponse(APIModel):
    id: int
    school_id: int
    name: str
    percentage: float
    description: Optional[str] = None
    student_count: int = 0
    created_at: datetime


class FeeResponse(APIModel):
    id: int
    student_id: int
    academic_term_id: Optional[int] = None
    description: str
    amount_due: float
    created_at: datetime


class StudentFeeSummary(APIModel):
    student_id: int
    fees: List[FeeResponse]
    total_due: float
    total_paid: float
    balance: float


class PaymentResponse(APIModel):
    id: int
    transaction_id: str
    student_id: int
    student_name: Optional[str] = None
    class_name: Optional[str] = None
    amount: float
    method: PaymentMethod
    status: PaymentStatus
    notes: Optional[str] = None
    payment_date: datetime
    recorded_by_user_id: Optional[int] = None
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None


class FinanceStatsResponse(APIModel):
    total_revenue: float
    total_transactions: int
    pending_fees: float
    overdue_count: int
    recent_activity: List[PaymentResponse]


class DuplicateCheckResponse(APIModel):
    has_duplicate_risk: bool
    recent_payments: List[PaymentResponse]


class RecentPayment(APIModel):
    id: int
    transaction_id: str
    amount: float
    method: PaymentMethod
    payment_date: datetime
    student_name: str
    class_name: Optional[str] = None


class TeacherClassStat(APIModel):
    id: int
    name: str
    grade_level: int
    student_count: int


class TeacherDashboard(APIModel):
    view: str = "teacher"
    my_classes: List[TeacherClassStat]
    total_students: int
    total_classes: int


class AdminDashboard(APIModel):
    view: str = "admin"
    daily_revenue: float
    active_students: int
    outstanding_fees: float
    recent_payments: List[RecentPayment]
