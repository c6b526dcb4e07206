import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy import select

from syncschool.core.config import settings
from syncschool.core.errors import BadRequestError, LimitExceeded, NotFoundError
from syncschool.core.logging import logger
from syncschool.models.academic import Class
from syncschool.models.base import as_utc, utcnow
from syncschool.models.school import School
from syncschool.models.student import Student
from syncschool.models.subscription import SubscriptionPayment, SubscriptionPlan
from syncschool.models.user import User
from syncschool.schemas.enums import (
    BillingCycle,
    LimitedResource,
    PaymentStatus,
    SubscriptionStatus,
    SubscriptionTier,
    UserRoleEnum,
)
from syncschool.schemas.subscription.requests import UpgradeRequest
from syncschool.schemas.subscription.responses import (
    SubscriptionPaymentResponse,
    SubscriptionStatusResponse,
    UsageItem,
    UsageResponse,
)
from syncschool.services.base import TenantService
from syncschool.services.school_service import apply_plan_limits


class Features:
    ATTENDANCE = "attendance"
    FEE_MANAGEMENT = "fee_management"
    BASIC_REPORTS = "basic_reports"
    REPORT_CARDS = "report_cards"
    PARENT_PORTAL = "parent_portal"
    EMAIL_NOTIFICATIONS = "email_notifications"
    SMS_NOTIFICATIONS = "sms_notifications"
    ONLINE_ASSESSMENTS = "online_assessments"
    TIMETABLE = "timetable"
    SYLLABUS_TRACKING = "syllabus_tracking"
    ADVANCED_REPORTS = "advanced_reports"
    PRIORITY_SUPPORT = "priority_support"
    API_ACCESS = "api_access"
    WHITE_LABEL = "white_label"
    DATA_EXPORT = "data_export"
    DEDICATED_SUPPORT = "dedicated_support"
    CUSTOM_INTEGRATIONS = "custom_integrations"


_STARTER_FEATURES = [
    Features.ATTENDANCE,
    Features.FEE_MANAGEMENT,
    Features.REPORT_CARDS,
    Features.PARENT_PORTAL,
    Features.EMAIL_NOTIFICATIONS,
    Features.BASIC_REPORTS,
]
_PROFESSIONAL_FEATURES = _STARTER_FEATURES[:-1] + [
    Features.SMS_NOTIFICATIONS,
    Features.ONLINE_ASSESSMENTS,
    Features.TIMETABLE,
    Features.SYLLABUS_TRACKING,
    Features.ADVANCED_REPORTS,
    Features.PRIORITY_SUPPORT,
]

# Prices in ZMW; included students = monthly price / per-student price. 0 limits are unlimited.
DEFAULT_PLANS = [
    {
        "name": "Free",
        "tier": SubscriptionTier.FREE,
        "description": "Perfect for small schools just getting started",
        "monthly_price": 0,
        "yearly_price": 0,
        "included_students": 10,
        "max_students": 10,
        "max_teachers": 2,
        "max_users": 5,
        "max_classes": 3,
        "features": [Features.ATTENDANCE, Features.BASIC_REPORTS, Features.FEE_MANAGEMENT],
        "is_popular": False,
        "sort_order": 0,
    },
    {
        "name": "Starter",
        "tier": SubscriptionTier.STARTER,
        "description": "Ideal for growing schools with essential features",
        "monthly_price": 3500,
        "yearly_price": 35000,
        "included_students": 175,
        "max_students": 175,
        "max_teachers": 20,
        "max_users": 40,
        "max_classes": 20,
        "features": _STARTER_FEATURES,
        "is_popular": False,
        "sort_order": 1,
    },
    {
        "name": "Professional",
        "tier": SubscriptionTier.PROFESSIONAL,
        "description": "Full-featured solution for established schools",
        "monthly_price": 9500,
        "yearly_price": 95000,
        "included_students": 475,
        "max_students": 475,
        "max_teachers": 60,
        "max_users": 120,
        "max_classes": 60,
        "features": _PROFESSIONAL_FEATURES,
        "is_popular": True,
        "sort_order": 2,
    },
    {
        "name": "Enterprise",
        "tier": SubscriptionTier.ENTERPRISE,
        "description": "Unlimited access for large institutions",
        "monthly_price": 15000,
        "yearly_price": 150000,
        "included_students": 750,
        "max_students": 0,
        "max_teachers": 0,
        "max_users": 0,
        "max_classes": 0,
        "features": _PROFESSIONAL_FEATURES + [
            Features.API_ACCESS,
            Features.WHITE_LABEL,
            Features.DATA_EXPORT,
            Features.DEDICATED_SUPPORT,
            Features.CUSTOM_INTEGRATIONS,
        ],
        "is_popular": False,
        "sort_order": 3,
    },
]

UPGRADE_URL = "/subscription/upgrade"

BLOCKED_STATUSES = {
    SubscriptionStatus.EXPIRED,
    SubscriptionStatus.SUSPENDED,
    SubscriptionStatus.CANCELLED,
}


@dataclass
class AccessCheck:
    allowed: bool
    status: SubscriptionStatus
    tier: SubscriptionTier
    expiry_date: Optional[datetime]
    days_until_expiry: Optional[int]
    reason: str = ""


@dataclass
class Quote:
    base_amount: float
    overage_students: int
    overage_amount: float
    total_amount: float
    period_start: datetime
    period_end: datetime


def days_until(expiry: Optional[datetime], now: datetime) -> Optional[int]:
    if expiry is None:
        return None
    return math.ceil((as_utc(expiry) - now).total_seconds() / 86400)


def evaluate_access(school: School, now: Optional[datetime] = None) -> AccessCheck:
    """Whether the school may use the product right now, and for how long"""
    now = now or utcnow()
    status = SubscriptionStatus(school.subscription_status)
    tier = SubscriptionTier(school.subscription_tier)
    expiry = school.trial_ends_at if status == SubscriptionStatus.TRIAL else school.subscription_ends_at
    expiry = as_utc(expiry)
    remaining = days_until(expiry, now)

    if status in BLOCKED_STATUSES:
        return AccessCheck(False, status, tier, expiry, remaining, f"Your subscription is {status.value.lower()}")
    if expiry is not None and expiry <= now:
        what = "trial" if status == SubscriptionStatus.TRIAL else "subscription"
        return AccessCheck(False, status, tier, expiry, remaining, f"Your {what} has expired")
    return AccessCheck(True, status, tier, expiry, remaining)


def calculate_quote(
    plan: SubscriptionPlan,
    billing_cycle: BillingCycle,
    current_students: int,
    per_student_price: float,
    start: datetime,
) -> Quote:
    """
    Price a plan for one billing period.

    Base is the monthly price times the months in the cycle, except ANNUAL
    which uses the yearly price. Students beyond the plan's included count
    are charged per student per month.
    """
    months = billing_cycle.months
    if billing_cycle == BillingCycle.ANNUAL:
        base = float(plan.yearly_price)
    else:
        base = float(plan.monthly_price) * months

    overage_students = max(0, current_students - plan.included_students)
    overage_amount = overage_students * per_student_price * months
    return Quote(
        base_amount=round(base, 2),
        overage_students=overage_students,
        overage_amount=round(overage_amount, 2),
        total_amount=round(base + overage_amount, 2),
        period_start=start,
        period_end=start + relativedelta(months=months),
    )


def usage_item(current: int, maximum: int) -> UsageItem:
    percentage = round(current / maximum * 100, 1) if maximum else 0.0
    return UsageItem(current=current, max=maximum, percentage=percentage)


def to_subscription_payment_response(payment: SubscriptionPayment) -> SubscriptionPaymentResponse:
    response = SubscriptionPaymentResponse.model_validate(payment)
    response.plan_name = payment.plan.name if payment.plan else None
    return response


class SubscriptionService(TenantService):

    async def list_plans(self) -> List[SubscriptionPlan]:
        result = await self.db.execute(
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.sort_order)
        )
        return list(result.scalars().all())

    async def get_plan(self, plan_id: int) -> SubscriptionPlan:
        plan = await self.db.get(SubscriptionPlan, plan_id)
        if plan is None or not plan.is_active:
            raise NotFoundError("Plan not found")
        return plan

    async def resource_counts(self) -> Dict[LimitedResource, int]:
        students = await self.count(
            select(Student.id).where(Student.school_id == self.school_id, Student.deleted_at.is_(None))
        )
        teachers = await self.count(
            select(User.id).where(User.school_id == self.school_id, User.role == UserRoleEnum.TEACHER)
        )
        users = await self.count(select(User.id).where(User.school_id == self.school_id))
        classes = await self.count(select(Class.id).where(Class.school_id == self.school_id))
        return {
            LimitedResource.STUDENTS: students,
            LimitedResource.TEACHERS: teachers,
            LimitedResource.USERS: users,
            LimitedResource.CLASSES: classes,
        }

    def limit_for(self, resource: LimitedResource) -> int:
        return {
            LimitedResource.STUDENTS: self.school.max_students,
            LimitedResource.TEACHERS: self.school.max_teachers,
            LimitedResource.USERS: self.school.max_users,
            LimitedResource.CLASSES: self.school.max_classes,
        }[resource]

    async def check_limit(self, resource: LimitedResource, increment: int = 1) -> Tuple[bool, int, int]:
        """
        Returns:
            (allowed, current count, maximum); a maximum of 0 means unlimited
        """
        maximum = self.limit_for(resource)
        current = (await self.resource_counts())[resource]
        if maximum and current + increment > maximum:
            return False, current, maximum
        return True, current, maximum

    async def remaining_capacity(self, resource: LimitedResource) -> Optional[int]:
        maximum = self.limit_for(resource)
        if not maximum:
            return None
        current = (await self.resource_counts())[resource]
        return max(0, maximum - current)

    async def enforce_limit(self, resource: LimitedResource, increment: int = 1) -> None:
        allowed, current, maximum = await self.check_limit(resource, increment)
        if allowed:
            return
        logger.info(f"School {self.school_id} hit its {resource.value} limit ({current}/{maximum})")
        raise LimitExceeded(
            f"You have reached the maximum number of {resource.value} ({maximum}) for your plan",
            details={
                "resource": resource.value,
                "currentCount": current,
                "maxAllowed": maximum,
                "tier": SubscriptionTier(self.school.subscription_tier).value,
                "upgradeRequired": True,
                "upgradeUrl": UPGRADE_URL,
            },
        )

    async def recent_payments(self, limit: int = 5) -> List[SubscriptionPayment]:
        result = await self.db.execute(
            select(SubscriptionPayment)
            .where(SubscriptionPayment.school_id == self.school_id)
            .order_by(SubscriptionPayment.created_at.desc(), SubscriptionPayment.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_status(self) -> SubscriptionStatusResponse:
        check = evaluate_access(self.school)
        counts = await self.resource_counts()
        usage = UsageResponse(**{
            resource.value: usage_item(counts[resource], self.limit_for(resource))
            for resource in LimitedResource
        })
        return SubscriptionStatusResponse(
            tier=check.tier,
            status=check.status,
            expiry_date=check.expiry_date,
            days_until_expiry=check.days_until_expiry,
            usage=usage,
            features=list(self.school.features or []),
            recent_payments=[to_subscription_payment_response(p) for p in await self.recent_payments()],
        )

    async def payment_history(self, page: int = 1, limit: int = 20) -> Tuple[List[SubscriptionPayment], int]:
        query = select(SubscriptionPayment).where(SubscriptionPayment.school_id == self.school_id)
        total = await self.count(query)
        result = await self.db.execute(
            query.order_by(SubscriptionPayment.created_at.desc(), SubscriptionPayment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_payment(self, payment_id: int) -> SubscriptionPayment:
        query = select(SubscriptionPayment).where(SubscriptionPayment.id == payment_id)
        if self.school_id is not None:
            query = query.where(SubscriptionPayment.school_id == self.school_id)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    async def initiate_upgrade(self, data: UpgradeRequest) -> Tuple[SubscriptionPayment, SubscriptionPlan]:
        plan = await self.get_plan(data.plan_id)
        counts = await self.resource_counts()
        quote = calculate_quote(
            plan,
            data.billing_cycle,
            counts[LimitedResource.STUDENTS],
            float(plan.price_per_student or settings.PER_STUDENT_PRICE),
            utcnow(),
        )

        payment = SubscriptionPayment(
            school_id=self.school_id,
            plan_id=plan.id,
            billing_cycle=data.billing_cycle,
            base_amount=quote.base_amount,
            student_count=counts[LimitedResource.STUDENTS],
            overage_students=quote.overage_students,
            overage_amount=quote.overage_amount,
            total_amount=quote.total_amount,
            currency=settings.SUBSCRIPTION_CURRENCY,
            payment_method=data.payment_method or "pending",
            status=PaymentStatus.PENDING,
            period_start=quote.period_start,
            period_end=quote.period_end,
        )
        async with self.transaction():
            self.db.add(payment)
        logger.info(
            f"Upgrade to {plan.tier.value} ({data.billing_cycle.value}) initiated for school "
            f"{self.school_id}: {quote.total_amount} {settings.SUBSCRIPTION_CURRENCY}"
        )
        return payment, plan

    async def confirm_payment(self, payment_id: int, external_ref: Optional[str] = None) -> SubscriptionPayment:
        """Mark a pending payment as paid and move the school onto the plan"""
        payment = await self.get_payment(payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise BadRequestError("Payment already processed")

        school = await self.db.get(School, payment.school_id)
        plan = payment.plan
        now = utcnow()

        async with self.transaction():
            payment.status = PaymentStatus.COMPLETED
            payment.paid_at = now
            payment.external_ref = external_ref
            payment.receipt_number = f"RCP-{int(now.timestamp() * 1000)}-{payment.id}"

            apply_plan_limits(school, plan)
            school.subscription_status = SubscriptionStatus.ACTIVE
            school.subscription_started_at = payment.period_start
            school.subscription_ends_at = payment.period_end

        logger.info(f"Subscription payment {payment.id} confirmed; school {school.slug} now on {plan.tier.value}")
        return await self.get_payment(payment_id)


async def seed_plans(db) -> int:
    """Insert the default plan catalogue; existing tiers are left alone"""
    result = await db.execute(select(SubscriptionPlan.tier))
    existing = set(result.scalars().all())
    created = 0
    for values in DEFAULT_PLANS:
        if values["tier"] in existing:
            continue
        db.add(SubscriptionPlan(price_per_student=settings.PER_STUDENT_PRICE, is_active=True, **values))
        created += 1
    if created:
        logger.info(f"Seeded {created} subscription plans")
    return created
