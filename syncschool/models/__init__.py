from syncschool.models.base import Base
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.models.academic import AcademicTerm, Class, Subject, class_subjects
from syncschool.models.student import ClassMovementLog, Student
from syncschool.models.attendance import Attendance
from syncschool.models.finance import Payment, Scholarship, StudentFeeStructure
from syncschool.models.subscription import (
    Invoice,
    InvoiceItem,
    SubscriptionPayment,
    SubscriptionPlan,
)
from syncschool.models.communication import PushSubscription

__all__ = [
    "Base",
    "School",
    "User",
    "AcademicTerm",
    "Class",
    "Subject",
    "class_subjects",
    "Student",
    "ClassMovementLog",
    "Attendance",
    "Scholarship",
    "StudentFeeStructure",
    "Payment",
    "SubscriptionPlan",
    "SubscriptionPayment",
    "Invoice",
    "InvoiceItem",
    "PushSubscription",
]
