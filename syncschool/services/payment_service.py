from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select

from syncschool.core.config import settings
from syncschool.core.errors import BadRequestError, DuplicatePaymentWarning, NotFoundError
from syncschool.core.logging import logger
from syncschool.core.security import generate_reference
from syncschool.models.base import utcnow
from syncschool.models.finance import Payment, StudentFeeStructure
from syncschool.models.student import Student
from syncschool.models.user import User
from syncschool.schemas.enums import PaymentStatus
from syncschool.schemas.finance.requests import PaymentCreate
from syncschool.schemas.finance.responses import FinanceStatsResponse, PaymentResponse
from syncschool.services.base import TenantService

RECENT_ACTIVITY_LIMIT = 5


def to_payment_response(payment: Payment) -> PaymentResponse:
    response = PaymentResponse.model_validate(payment)
    student = payment.student
    if student is not None:
        response.student_name = student.full_name
        response.class_name = student.class_.name if student.class_ is not None else None
    return response


class PaymentService(TenantService):

    async def _recent_matches(self, student_id: int, amount: float, limit: int = 5) -> List[Payment]:
        """COMPLETED payments of the same amount for the student inside the duplicate window"""
        since = utcnow() - timedelta(minutes=settings.DUPLICATE_PAYMENT_WINDOW_MINUTES)
        result = await self.db.execute(
            select(Payment)
            .where(
                Payment.school_id == self.school_id,
                Payment.student_id == student_id,
                Payment.amount == amount,
                Payment.status == PaymentStatus.COMPLETED,
                Payment.created_at >= since,
            )
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _new_transaction_id(self) -> str:
        while True:
            candidate = generate_reference("TXN")
            existing = await self.db.execute(select(Payment.id).where(Payment.transaction_id == candidate))
            if existing.scalar_one_or_none() is None:
                return candidate

    async def create_payment(self, data: PaymentCreate, recorded_by: User) -> Payment:
        student = await self.get_owned(Student, data.student_id, "Student not found")
        if student.deleted_at is not None:
            raise NotFoundError("Student not found")

        if not data.force_create:
            matches = await self._recent_matches(student.id, data.amount, limit=1)
            if matches:
                logger.info(f"Possible duplicate payment for student {student.id}: {matches[0].transaction_id}")
                raise DuplicatePaymentWarning(
                    to_payment_response(matches[0]).model_dump(mode="json", by_alias=True)
                )

        payment = Payment(
            school_id=self.school_id,
            transaction_id=await self._new_transaction_id(),
            student_id=student.id,
            amount=data.amount,
            method=data.method,
            status=PaymentStatus.COMPLETED,
            notes=data.notes,
            payment_date=utcnow(),
            recorded_by_user_id=recorded_by.id,
        )
        async with self.transaction():
            self.db.add(payment)
        logger.info(
            f"Payment {payment.transaction_id} of {payment.amount} recorded for student {student.id}",
            extra={"user_id": recorded_by.id, "tenant_id": self.school_id},
        )
        return await self.get_payment(payment.id)

    async def get_payment(self, payment_id: int) -> Payment:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.id == payment_id, Payment.school_id == self.school_id)
            .execution_options(populate_existing=True)
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    async def list_payments(
        self,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
    ) -> Tuple[List[Payment], int]:
        query = (
            select(Payment)
            .join(Student, Student.id == Payment.student_id)
            .where(Payment.school_id == self.school_id)
        )
        if status:
            query = query.where(Payment.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                Payment.transaction_id.ilike(pattern),
                Student.first_name.ilike(pattern),
                Student.last_name.ilike(pattern),
                Student.admission_number.ilike(pattern),
            ))

        total = await self.count(query)
        result = await self.db.execute(
            query.order_by(Payment.payment_date.desc(), Payment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def student_payments(self, student_id: int) -> List[Payment]:
        await self.get_owned(Student, student_id, "Student not found")
        result = await self.db.execute(
            select(Payment)
            .where(Payment.school_id == self.school_id, Payment.student_id == student_id)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())

    async def void_payment(self, payment_id: int, reason: str, voided_by: User) -> Payment:
        payment = await self.get_payment(payment_id)
        if payment.status == PaymentStatus.VOIDED:
            raise BadRequestError("This payment has already been voided")

        async with self.transaction():
            payment.status = PaymentStatus.VOIDED
            payment.voided_at = utcnow()
            payment.voided_by_user_id = voided_by.id
            payment.void_reason = reason.strip()
        logger.warning(
            f"Payment {payment.transaction_id} voided: {reason}",
            extra={"user_id": voided_by.id, "tenant_id": self.school_id},
        )
        return payment

    async def check_duplicate(self, student_id: int, amount: float) -> List[Payment]:
        return await self._recent_matches(student_id, amount)

    async def total_collected(self) -> float:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.school_id == self.school_id,
                Payment.status == PaymentStatus.COMPLETED,
            )
        )
        return float(result.scalar_one() or 0)

    async def total_assigned(self) -> float:
        result = await self.db.execute(
            select(func.coalesce(func.sum(StudentFeeStructure.amount_due), 0)).where(
                StudentFeeStructure.school_id == self.school_id,
            )
        )
        return float(result.scalar_one() or 0)

    async def finance_stats(self) -> FinanceStatsResponse:
        completed = await self.db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0), func.count(Payment.id)).where(
                Payment.school_id == self.school_id,
                Payment.status == PaymentStatus.COMPLETED,
            )
        )
        total_revenue, total_transactions = completed.one()
        total_revenue = float(total_revenue or 0)
        pending_fees = max(0.0, await self.total_assigned() - total_revenue)

        due_rows = await self.db.execute(
            select(StudentFeeStructure.student_id, func.sum(StudentFeeStructure.amount_due))
            .where(StudentFeeStructure.school_id == self.school_id)
            .group_by(StudentFeeStructure.student_id)
        )
        paid_rows = await self.db.execute(
            select(Payment.student_id, func.sum(Payment.amount))
            .where(Payment.school_id == self.school_id, Payment.status == PaymentStatus.COMPLETED)
            .group_by(Payment.student_id)
        )
        paid_by_student = {student_id: float(total or 0) for student_id, total in paid_rows.all()}
        overdue_count = sum(
            1 for student_id, due in due_rows.all()
            if float(due or 0) > paid_by_student.get(student_id, 0.0)
        )

        recent = await self.db.execute(
            select(Payment)
            .where(Payment.school_id == self.school_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
        )

        return FinanceStatsResponse(
            total_revenue=total_revenue,
            total_transactions=total_transactions,
            pending_fees=pending_fees,
            overdue_count=overdue_count,
            recent_activity=[to_payment_response(p) for p in recent.scalars().all()],
        )
