import io
from datetime import datetime
from typing import List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_, select

from syncschool.core.errors import BadRequestError, ConflictError, NotFoundError
from syncschool.core.logging import logger
from syncschool.models.academic import Class
from syncschool.models.attendance import Attendance
from syncschool.models.base import utcnow
from syncschool.models.finance import Payment, Scholarship
from syncschool.models.student import ClassMovementLog, Student
from syncschool.models.user import User
from syncschool.schemas.enums import UserRoleEnum
from syncschool.schemas.student.requests import StudentCreate, StudentUpdate
from syncschool.schemas.student.responses import (
    ImportRowError,
    StudentAttendanceSummary,
    StudentDetailResponse,
    StudentImportResponse,
    StudentPaymentSummary,
)
from syncschool.services.academic_term_service import AcademicTermService
from syncschool.services.base import TenantService
from syncschool.utils.import_cleaning import build_student_row

REQUIRED_IMPORT_COLUMNS = {"NAME", "GRADE"}
RECENT_ATTENDANCE_LIMIT = 5


class StudentService(TenantService):

    def _active(self):
        return select(Student).where(Student.school_id == self.school_id, Student.deleted_at.is_(None))

    async def list_students(
        self,
        search: Optional[str] = None,
        class_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[Student]:
        query = self._active().order_by(Student.last_name, Student.first_name)
        if class_id is not None:
            query = query.where(Student.class_id == class_id)
        if status:
            query = query.where(Student.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                Student.first_name.ilike(pattern),
                Student.last_name.ilike(pattern),
                Student.admission_number.ilike(pattern),
            ))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_student(self, student_id: int) -> Student:
        result = await self.db.execute(
            self._active().where(Student.id == student_id).execution_options(populate_existing=True)
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student not found")
        return student

    async def get_student_detail(self, student_id: int) -> StudentDetailResponse:
        student = await self.get_student(student_id)
        payments = await self.db.execute(
            select(Payment)
            .where(Payment.student_id == student.id)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
        )
        attendance = await self.db.execute(
            select(Attendance)
            .where(Attendance.student_id == student.id)
            .order_by(Attendance.date.desc())
            .limit(RECENT_ATTENDANCE_LIMIT)
        )
        detail = StudentDetailResponse.model_validate(student)
        detail.payments = [StudentPaymentSummary.model_validate(p) for p in payments.scalars().all()]
        detail.attendance = [StudentAttendanceSummary.model_validate(a) for a in attendance.scalars().all()]
        return detail

    async def _validate_references(
        self,
        class_id: Optional[int] = None,
        scholarship_id: Optional[int] = None,
        parent_id: Optional[int] = None,
    ) -> None:
        if class_id is not None:
            await self.get_owned(Class, class_id, "Class not found")
        if scholarship_id is not None:
            await self.get_owned(Scholarship, scholarship_id, "Scholarship not found")
        if parent_id is not None:
            result = await self.db.execute(
                select(User.id).where(
                    User.id == parent_id,
                    User.school_id == self.school_id,
                    User.role == UserRoleEnum.PARENT,
                )
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Parent not found")

    async def _validate_admission_number(self, admission_number: str, exclude_id: Optional[int] = None) -> None:
        query = select(Student.id).where(
            Student.school_id == self.school_id,
            Student.admission_number == admission_number,
        )
        if exclude_id:
            query = query.where(Student.id != exclude_id)
        existing = await self.db.execute(query)
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A student with this admission number already exists")

    async def create_student(self, data: StudentCreate) -> Student:
        await self._validate_references(data.class_id, data.scholarship_id, data.parent_id)
        await self._validate_admission_number(data.admission_number)

        student = Student(school_id=self.school_id, **data.model_dump())
        async with self.transaction():
            self.db.add(student)
        logger.info(f"Student {student.admission_number} enrolled in school {self.school_id}")
        return await self.get_student(student.id)

    async def update_student(self, student_id: int, data: StudentUpdate, changed_by: User) -> Student:
        student = await self.get_student(student_id)
        changes = data.model_dump(exclude_unset=True)
        reason = changes.pop("reason", None)

        await self._validate_references(
            changes.get("class_id"),
            changes.get("scholarship_id"),
            changes.get("parent_id"),
        )
        if changes.get("admission_number"):
            await self._validate_admission_number(changes["admission_number"], exclude_id=student.id)

        async with self.transaction():
            new_class_id = changes.get("class_id")
            if new_class_id is not None and new_class_id != student.class_id:
                self.db.add(ClassMovementLog(
                    school_id=self.school_id,
                    student_id=student.id,
                    from_class_id=student.class_id,
                    to_class_id=new_class_id,
                    reason=reason or "Class update",
                    moved_by_user_id=changed_by.id,
                ))
            for field, value in changes.items():
                setattr(student, field, value)
        return await self.get_student(student_id)

    async def delete_student(self, student_id: int) -> None:
        """Soft delete; payments and attendance keep pointing at the row"""
        student = await self.get_student(student_id)
        async with self.transaction():
            student.deleted_at = utcnow()
        logger.info(f"Student {student_id} removed from school {self.school_id}")

    async def bulk_delete(self, student_ids: List[int]) -> int:
        result = await self.db.execute(self._active().where(Student.id.in_(set(student_ids))))
        students = list(result.scalars().all())
        now = utcnow()
        async with self.transaction():
            for student in students:
                student.deleted_at = now
        return len(students)

    async def _taken_admission_numbers(self) -> set:
        result = await self.db.execute(
            select(Student.admission_number).where(Student.school_id == self.school_id)
        )
        return set(result.scalars().all())

    async def _class_ids_in_school(self) -> set:
        result = await self.db.execute(select(Class.id).where(Class.school_id == self.school_id))
        return set(result.scalars().all())

    async def new_rows(self, rows: List[StudentCreate]) -> List[StudentCreate]:
        """Rows that would create a student: unseen admission number and a class in this school"""
        taken = await self._taken_admission_numbers()
        class_ids = await self._class_ids_in_school()

        fresh = []
        for row in rows:
            if row.admission_number in taken or row.class_id not in class_ids:
                continue
            taken.add(row.admission_number)
            fresh.append(row)
        return fresh

    async def bulk_create(self, rows: List[StudentCreate]) -> Tuple[int, int]:
        """Insert valid rows; rows with a duplicate admission number or a foreign class are skipped"""
        new_students = [
            Student(school_id=self.school_id, **row.model_dump()) for row in await self.new_rows(rows)
        ]

        if new_students:
            async with self.transaction():
                self.db.add_all(new_students)
        skipped = len(rows) - len(new_students)
        logger.info(f"Bulk student import for school {self.school_id}: {len(new_students)} created, {skipped} skipped")
        return len(new_students), skipped

    async def _class_lookup(self) -> dict:
        """Class name (lower-cased) to id, preferring classes of the active term"""
        active_term = await AcademicTermService(self.db, self.school).get_active_term()
        result = await self.db.execute(
            select(Class.id, Class.name, Class.academic_term_id).where(Class.school_id == self.school_id)
        )
        lookup = {}
        for class_id, name, term_id in result.all():
            key = name.strip().lower()
            if key not in lookup or (active_term and term_id == active_term.id):
                lookup[key] = class_id
        return lookup

    @staticmethod
    def read_upload(filename: str, content: bytes) -> pd.DataFrame:
        name = (filename or "").lower()
        if name.endswith(".csv"):
            df = pd.read_csv(io.BytesIO(content))
        elif name.endswith((".xls", ".xlsx")):
            df = pd.read_excel(io.BytesIO(content))
        else:
            raise BadRequestError("Invalid file format. Please upload a CSV or Excel file.")

        df.columns = [str(c).strip().upper().replace(" ", "_") for c in df.columns]
        missing = REQUIRED_IMPORT_COLUMNS - set(df.columns)
        if missing:
            raise BadRequestError(f"Missing required columns: {', '.join(sorted(missing))}")
        return df.astype(object).where(pd.notna(df), None)

    async def import_file(
        self,
        filename: str,
        content: bytes,
        capacity: Optional[int] = None,
    ) -> StudentImportResponse:
        """
        Import a register spreadsheet with at least NAME and GRADE columns.
        Names are cleaned and split, grade codes mapped to class names.

        Args:
            capacity: how many more students the school's plan allows; None is unlimited
        """
        df = self.read_upload(filename, content)
        classes = await self._class_lookup()
        taken = await self._taken_admission_numbers()

        errors: List[ImportRowError] = []
        new_students = []
        skipped = 0
        sequence = 0
        year = datetime.now().year

        for index, raw in df.iterrows():
            row_number = index + 2  # header is row 1
            fields = build_student_row(raw.to_dict())
            if fields is None:
                skipped += 1
                continue

            class_id = classes.get(fields.pop("class_name").lower())
            if class_id is None:
                errors.append(ImportRowError(row=row_number, error="No matching class for grade"))
                continue

            if not fields["admission_number"]:
                sequence += 1
                while f"{year}{sequence:04d}" in taken:
                    sequence += 1
                fields["admission_number"] = f"{year}{sequence:04d}"
            if fields["admission_number"] in taken:
                skipped += 1
                continue

            try:
                data = StudentCreate(class_id=class_id, **fields)
            except PydanticValidationError as e:
                errors.append(ImportRowError(row=row_number, error=str(e.errors()[0].get("msg"))))
                continue

            if capacity is not None and len(new_students) >= capacity:
                errors.append(ImportRowError(row=row_number, error="Student limit reached for your plan"))
                continue

            taken.add(data.admission_number)
            new_students.append(Student(school_id=self.school_id, **data.model_dump()))

        if new_students:
            async with self.transaction():
                self.db.add_all(new_students)

        logger.info(
            f"Student file import for school {self.school_id}: "
            f"{len(new_students)} created, {skipped} skipped, {len(errors)} errors"
        )
        return StudentImportResponse(
            message=f"Successfully imported {len(new_students)} students",
            count=len(new_students),
            skipped=skipped,
            errors=errors,
        )

    async def my_children(self, parent: User) -> List[Student]:
        result = await self.db.execute(
            self._active().where(Student.parent_id == parent.id).order_by(Student.first_name)
        )
        return list(result.scalars().all())
