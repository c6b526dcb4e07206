from datetime import datetime, time, timezone
from typing import Union

from sqlalchemy import func, select

from syncschool.models.finance import Payment
from syncschool.models.student import Student
from syncschool.models.user import User
from syncschool.schemas.enums import PaymentStatus, StudentStatus, UserRoleEnum
from syncschool.schemas.finance.responses import (
    AdminDashboard,
    RecentPayment,
    TeacherClassStat,
    TeacherDashboard,
)
from syncschool.services.base import TenantService
from syncschool.services.class_service import ClassService
from syncschool.services.payment_service import PaymentService

RECENT_PAYMENTS_LIMIT = 5


def outstanding_fees(total_assigned: float, total_collected: float) -> float:
    """
    School-wide figure: everything assigned minus everything collected.
    Overpayment by one student therefore offsets another student's debt.
    """
    return max(0.0, total_assigned - total_collected)


class DashboardService(TenantService):

    async def stats_for(self, user: User) -> Union[TeacherDashboard, AdminDashboard]:
        if user.role == UserRoleEnum.TEACHER:
            return await self.teacher_stats(user)
        return await self.admin_stats()

    async def teacher_stats(self, teacher: User) -> TeacherDashboard:
        classes = await ClassService(self.db, self.school).list_classes(teacher_id=teacher.id)
        my_classes = [
            TeacherClassStat(id=c.id, name=c.name, grade_level=c.grade_level, student_count=count)
            for c, count in classes
        ]
        return TeacherDashboard(
            my_classes=my_classes,
            total_students=sum(c.student_count for c in my_classes),
            total_classes=len(my_classes),
        )

    async def admin_stats(self) -> AdminDashboard:
        start_of_day = datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)
        revenue = await self.db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.school_id == self.school_id,
                Payment.status == PaymentStatus.COMPLETED,
                Payment.payment_date >= start_of_day,
            )
        )

        active_students = await self.count(
            select(Student.id).where(
                Student.school_id == self.school_id,
                Student.status == StudentStatus.ACTIVE,
                Student.deleted_at.is_(None),
            )
        )

        payments = PaymentService(self.db, self.school)
        outstanding = outstanding_fees(await payments.total_assigned(), await payments.total_collected())

        recent = await self.db.execute(
            select(Payment)
            .where(Payment.school_id == self.school_id)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
            .limit(RECENT_PAYMENTS_LIMIT)
        )
        recent_payments = [
            RecentPayment(
                id=p.id,
                transaction_id=p.transaction_id,
                amount=p.amount,
                method=p.method,
                payment_date=p.payment_date,
                student_name=p.student.full_name,
                class_name=p.student.class_.name if p.student.class_ else None,
            )
            for p in recent.scalars().all()
        ]

        return AdminDashboard(
            daily_revenue=float(revenue.scalar_one() or 0),
            active_students=active_students,
            outstanding_fees=outstanding,
            recent_payments=recent_payments,
        )
