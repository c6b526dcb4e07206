from typing import List

from sqlalchemy import func, select

from syncschool.core.logging import logger
from syncschool.models.academic import AcademicTerm
from syncschool.models.finance import Payment, StudentFeeStructure
from syncschool.models.student import Student
from syncschool.schemas.enums import PaymentStatus
from syncschool.schemas.finance.requests import FeeCreate
from syncschool.schemas.finance.responses import FeeResponse, StudentFeeSummary
from syncschool.services.base import TenantService


class FeeService(TenantService):

    async def assign_fee(self, data: FeeCreate) -> StudentFeeStructure:
        await self.get_owned(Student, data.student_id, "Student not found")
        if data.academic_term_id is not None:
            await self.get_owned(AcademicTerm, data.academic_term_id, "Academic term not found")

        fee = StudentFeeStructure(
            school_id=self.school_id,
            student_id=data.student_id,
            academic_term_id=data.academic_term_id,
            description=data.description.strip(),
            amount_due=data.amount_due,
        )
        async with self.transaction():
            self.db.add(fee)
        logger.info(f"Fee of {data.amount_due} assigned to student {data.student_id}")
        return fee

    async def student_fees(self, student_id: int) -> StudentFeeSummary:
        await self.get_owned(Student, student_id, "Student not found")
        result = await self.db.execute(
            select(StudentFeeStructure)
            .where(StudentFeeStructure.school_id == self.school_id, StudentFeeStructure.student_id == student_id)
            .order_by(StudentFeeStructure.created_at)
        )
        fees: List[StudentFeeStructure] = list(result.scalars().all())

        paid = await self.db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.school_id == self.school_id,
                Payment.student_id == student_id,
                Payment.status == PaymentStatus.COMPLETED,
            )
        )
        total_paid = float(paid.scalar_one() or 0)
        total_due = float(sum(f.amount_due for f in fees))

        return StudentFeeSummary(
            student_id=student_id,
            fees=[FeeResponse.model_validate(f) for f in fees],
            total_due=total_due,
            total_paid=total_paid,
            balance=max(0.0, total_due - total_paid),
        )
