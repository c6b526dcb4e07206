from datetime import date
from typing import List

from sqlalchemy import delete, select

from syncschool.core.errors import BadRequestError, NotFoundError
from syncschool.core.logging import logger
from syncschool.models.academic import Class
from syncschool.models.attendance import Attendance
from syncschool.models.student import Student
from syncschool.models.user import User
from syncschool.schemas.attendance.requests import AttendanceCreate
from syncschool.services.base import TenantService


class AttendanceService(TenantService):

    async def record_attendance(self, data: AttendanceCreate, recorded_by: User) -> int:
        """
        Replace the class roster for the given day.

        Deleting the previous rows and inserting the new ones happen in one
        transaction, so readers see either the old roster or the new one.
        """
        await self.get_owned(Class, data.class_id, "Class not found")

        student_ids = {r.student_id for r in data.records}
        if student_ids:
            result = await self.db.execute(
                select(Student.id).where(Student.id.in_(student_ids), Student.school_id == self.school_id)
            )
            if len(set(result.scalars().all())) != len(student_ids):
                raise BadRequestError("One or more students do not belong to this school")

        # Last entry wins when a student appears twice in one submission
        statuses = {r.student_id: r.status for r in data.records}

        async with self.transaction():
            await self.db.execute(
                delete(Attendance).where(
                    Attendance.school_id == self.school_id,
                    Attendance.class_id == data.class_id,
                    Attendance.date == data.date,
                )
            )
            self.db.add_all([
                Attendance(
                    school_id=self.school_id,
                    class_id=data.class_id,
                    student_id=student_id,
                    date=data.date,
                    status=status,
                    recorded_by_user_id=recorded_by.id,
                )
                for student_id, status in statuses.items()
            ])

        logger.info(
            f"Attendance for class {data.class_id} on {data.date} recorded: {len(statuses)} students",
            extra={"user_id": recorded_by.id, "tenant_id": self.school_id},
        )
        return len(statuses)

    async def get_class_attendance(self, class_id: int, on_date: date) -> List[Attendance]:
        await self.get_owned(Class, class_id, "Class not found")
        result = await self.db.execute(
            select(Attendance)
            .join(Student, Student.id == Attendance.student_id)
            .where(
                Attendance.school_id == self.school_id,
                Attendance.class_id == class_id,
                Attendance.date == on_date,
            )
            .order_by(Student.last_name, Student.first_name)
        )
        return list(result.scalars().all())

    async def get_student_attendance(self, student_id: int) -> List[Attendance]:
        await self.get_owned(Student, student_id, "Student not found")
        result = await self.db.execute(
            select(Attendance)
            .where(Attendance.school_id == self.school_id, Attendance.student_id == student_id)
            .order_by(Attendance.date.desc())
        )
        return list(result.scalars().all())
