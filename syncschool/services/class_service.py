from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import func, select

from syncschool.core.errors import BadRequestError, NotFoundError
from syncschool.core.logging import logger
from syncschool.models.academic import AcademicTerm, Class
from syncschool.models.student import ClassMovementLog, Student
from syncschool.models.user import User
from syncschool.schemas.academic.requests import ClassBulkItem, ClassCreate, ClassUpdate
from syncschool.schemas.academic.responses import ClassResponse
from syncschool.schemas.enums import UserRoleEnum
from syncschool.services.academic_term_service import AcademicTermService
from syncschool.services.base import TenantService
from syncschool.services.subject_service import SubjectService

# Roles that may be put in charge of a class
CLASS_TEACHER_ROLES = (UserRoleEnum.TEACHER, UserRoleEnum.SUPER_ADMIN)


def to_class_response(school_class: Class, student_count: int = 0) -> ClassResponse:
    response = ClassResponse.model_validate(school_class)
    response.student_count = student_count
    return response


class ClassService(TenantService):

    async def _student_counts(self, class_ids: List[int]) -> Dict[int, int]:
        if not class_ids:
            return {}
        result = await self.db.execute(
            select(Student.class_id, func.count(Student.id))
            .where(Student.class_id.in_(class_ids), Student.deleted_at.is_(None))
            .group_by(Student.class_id)
        )
        return {class_id: count for class_id, count in result.all()}

    async def list_classes(self, teacher_id: Optional[int] = None) -> List[Tuple[Class, int]]:
        query = select(Class).order_by(Class.grade_level, Class.name)
        if self.school_id is not None:
            query = query.where(Class.school_id == self.school_id)
        if teacher_id is not None:
            query = query.where(Class.teacher_id == teacher_id)
        result = await self.db.execute(query)
        classes = list(result.scalars().all())
        counts = await self._student_counts([c.id for c in classes])
        return [(c, counts.get(c.id, 0)) for c in classes]

    async def get_class(self, class_id: int) -> Class:
        result = await self.db.execute(
            select(Class)
            .where(Class.id == class_id, Class.school_id == self.school_id)
            .execution_options(populate_existing=True)
        )
        school_class = result.scalar_one_or_none()
        if school_class is None:
            raise NotFoundError("Class not found")
        return school_class

    async def get_class_with_count(self, class_id: int) -> Tuple[Class, int]:
        school_class = await self.get_class(class_id)
        counts = await self._student_counts([class_id])
        return school_class, counts.get(class_id, 0)

    async def _validate_teacher(self, teacher_id: int) -> None:
        result = await self.db.execute(
            select(User.id).where(
                User.id == teacher_id,
                User.school_id == self.school_id,
                User.role.in_(CLASS_TEACHER_ROLES),
            )
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Teacher not found")

    async def _validate_term(self, term_id: int) -> None:
        await self.get_owned(AcademicTerm, term_id, "Academic term not found")

    async def create_class(self, data: ClassCreate) -> Class:
        await self._validate_teacher(data.teacher_id)
        await self._validate_term(data.academic_term_id)
        subjects = await SubjectService(self.db, self.school).get_many(data.subject_ids or [])

        school_class = Class(
            school_id=self.school_id,
            name=data.name.strip(),
            grade_level=data.grade_level,
            teacher_id=data.teacher_id,
            academic_term_id=data.academic_term_id,
            subjects=subjects,
        )
        async with self.transaction():
            self.db.add(school_class)
        logger.info(f"Class {school_class.name} created for school {self.school_id}")
        return await self.get_class(school_class.id)

    async def update_class(self, class_id: int, data: ClassUpdate) -> Class:
        school_class = await self.get_class(class_id)
        changes = data.model_dump(exclude_unset=True)
        subject_ids = changes.pop("subject_ids", None)

        if changes.get("teacher_id") is not None:
            await self._validate_teacher(changes["teacher_id"])
        if changes.get("academic_term_id") is not None:
            await self._validate_term(changes["academic_term_id"])

        async with self.transaction():
            for field, value in changes.items():
                if value is not None:
                    setattr(school_class, field, value)
            if subject_ids is not None:
                school_class.subjects = await SubjectService(self.db, self.school).get_many(subject_ids)
        return await self.get_class(class_id)

    async def delete_class(self, class_id: int) -> None:
        school_class = await self.get_class(class_id)
        enrolled = await self.count(select(Student.id).where(Student.class_id == class_id))
        if enrolled:
            raise BadRequestError("Cannot delete a class that still has students")
        async with self.transaction():
            await self.db.delete(school_class)
        logger.info(f"Class {class_id} deleted from school {self.school_id}")

    async def get_class_students(self, class_id: int) -> List[Student]:
        await self.get_class(class_id)
        result = await self.db.execute(
            select(Student)
            .where(Student.class_id == class_id, Student.deleted_at.is_(None))
            .order_by(Student.last_name, Student.first_name)
        )
        return list(result.scalars().all())

    async def add_students(self, class_id: int, student_ids: List[int], moved_by: User) -> int:
        """Move students into the class; every student must belong to the class's school"""
        school_class = await self.get_class(class_id)
        wanted = set(student_ids)
        result = await self.db.execute(
            select(Student).where(
                Student.id.in_(wanted),
                Student.school_id == school_class.school_id,
                Student.deleted_at.is_(None),
            )
        )
        students = list(result.scalars().all())
        if len(students) != len(wanted):
            raise BadRequestError("One or more students do not belong to this school")

        async with self.transaction():
            for student in students:
                if student.class_id == class_id:
                    continue
                self.db.add(ClassMovementLog(
                    school_id=self.school_id,
                    student_id=student.id,
                    from_class_id=student.class_id,
                    to_class_id=class_id,
                    reason="Added to class",
                    moved_by_user_id=moved_by.id,
                ))
                student.class_id = class_id
        return len(students)

    async def _default_teacher_id(self) -> Optional[int]:
        result = await self.db.execute(
            select(User.id)
            .where(User.school_id == self.school_id, User.role.in_(CLASS_TEACHER_ROLES))
            .order_by(User.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _ids_in_school(self, model, ids: Set[int], *criteria) -> Set[int]:
        if not ids:
            return set()
        result = await self.db.execute(
            select(model.id).where(model.school_id == self.school_id, model.id.in_(ids), *criteria)
        )
        return set(result.scalars().all())

    async def bulk_create(self, rows: List[ClassBulkItem]) -> Tuple[int, int]:
        """
        Import classes from spreadsheet rows.

        A teacher or term id that does not exist in this school, or a teacher
        id naming a non-teaching user, falls back to the school default (first
        teacher or admin, active term). Rows that still have no teacher or
        term, and rows repeating an existing (name, term) pair, are skipped.

        Returns:
            (created, skipped)
        """
        active_term = await AcademicTermService(self.db, self.school).get_active_term()
        default_term_id = active_term.id if active_term else None
        default_teacher_id = await self._default_teacher_id()

        valid_teachers = await self._ids_in_school(
            User, {r.teacher_id for r in rows if r.teacher_id}, User.role.in_(CLASS_TEACHER_ROLES)
        )
        valid_terms = await self._ids_in_school(AcademicTerm, {r.academic_term_id for r in rows if r.academic_term_id})

        existing = await self.db.execute(
            select(Class.name, Class.academic_term_id).where(Class.school_id == self.school_id)
        )
        taken = {(name.lower(), term_id) for name, term_id in existing.all()}

        new_classes = []
        skipped = 0
        for row in rows:
            teacher_id = row.teacher_id if row.teacher_id in valid_teachers else default_teacher_id
            term_id = row.academic_term_id if row.academic_term_id in valid_terms else default_term_id
            name = row.name.strip()
            key = (name.lower(), term_id)

            if teacher_id is None or term_id is None or key in taken:
                skipped += 1
                continue

            taken.add(key)
            new_classes.append(Class(
                school_id=self.school_id,
                name=name,
                grade_level=row.grade_level,
                teacher_id=teacher_id,
                academic_term_id=term_id,
            ))

        if new_classes:
            async with self.transaction():
                self.db.add_all(new_classes)

        logger.info(f"Bulk class import for school {self.school_id}: {len(new_classes)} created, {skipped} skipped")
        return len(new_classes), skipped
