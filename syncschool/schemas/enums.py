from enum import Enum


class UserRoleEnum(str, Enum):
    SYSTEM_OWNER = "SYSTEM_OWNER"
    SUPER_ADMIN = "SUPER_ADMIN"
    BURSAR = "BURSAR"
    TEACHER = "TEACHER"
    SECRETARY = "SECRETARY"
    PARENT = "PARENT"


# Roles a school admin may create through /auth/register
STAFF_ROLES = (
    UserRoleEnum.SUPER_ADMIN,
    UserRoleEnum.BURSAR,
    UserRoleEnum.TEACHER,
    UserRoleEnum.SECRETARY,
)


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class StudentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    TRANSFERRED = "TRANSFERRED"
    GRADUATED = "GRADUATED"
    DROPPED_OUT = "DROPPED_OUT"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    MOBILE_MONEY = "MOBILE_MONEY"
    BANK_DEPOSIT = "BANK_DEPOSIT"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    VOIDED = "VOIDED"


class SubscriptionTier(str, Enum):
    FREE = "FREE"
    STARTER = "STARTER"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(str, Enum):
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


class BillingCycle(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"

    @property
    def months(self) -> int:
        return {"MONTHLY": 1, "QUARTERLY": 3, "ANNUAL": 12}[self.value]


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class LimitedResource(str, Enum):
    STUDENTS = "students"
    TEACHERS = "teachers"
    USERS = "users"
    CLASSES = "classes"
