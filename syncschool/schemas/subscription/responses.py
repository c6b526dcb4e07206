from datetime import datetime
from typing import List, Optional

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import (
    BillingCycle,
    InvoiceStatus,
    PaymentStatus,
    SubscriptionStatus,
    SubscriptionTier,
)


class PlanResponse(APIModel):
    id: int
    name: str
    tier: SubscriptionTier
    description: Optional[str] = None
    monthly_price: float
    yearly_price: float
    price_per_student: float
    included_students: int
    max_students: int
    max_teachers: int
    max_users: int
    max_classes: int
    features: List[str]
    is_popular: bool


class SubscriptionPaymentResponse(APIModel):
    id: int
    school_id: int
    plan_id: int
    plan_name: Optional[str] = None
    billing_cycle: BillingCycle
    base_amount: float
    student_count: int
    overage_students: int
    overage_amount: float
    total_amount: float
    currency: str
    status: PaymentStatus
    period_start: datetime
    period_end: datetime
    paid_at: Optional[datetime] = None
    external_ref: Optional[str] = None
    receipt_number: Optional[str] = None
    created_at: datetime


class UsageItem(APIModel):
    current: int
    max: int
    percentage: float


class UsageResponse(APIModel):
    students: UsageItem
    teachers: UsageItem
    users: UsageItem
    classes: UsageItem


class SubscriptionStatusResponse(APIModel):
    tier: SubscriptionTier
    status: SubscriptionStatus
    expiry_date: Optional[datetime] = None
    days_until_expiry: Optional[int] = None
    usage: UsageResponse
    features: List[str]
    recent_payments: List[SubscriptionPaymentResponse]


class InvoiceItemResponse(APIModel):
    id: int
    description: str
    quantity: int
    unit_price: float
    amount: float


class InvoiceResponse(APIModel):
    id: int
    school_id: int
    invoice_number: str
    subscription_payment_id: Optional[int] = None
    status: InvoiceStatus
    subtotal: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    paid_amount: float
    balance_amount: float
    currency: str
    issue_date: datetime
    due_date: datetime
    paid_date: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[InvoiceItemResponse] = []


class UpgradeResponse(APIModel):
    payment_id: int
    plan_name: str
    tier: SubscriptionTier
    billing_cycle: BillingCycle
    base_amount: float
    overage_students: int
    overage_amount: float
    amount: float
    currency: str
    period_start: datetime
    period_end: datetime
    message: str
