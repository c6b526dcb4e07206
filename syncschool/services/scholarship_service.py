from typing import List, Tuple

from sqlalchemy import func, select

from syncschool.core.errors import BadRequestError, ConflictError
from syncschool.core.logging import logger
from syncschool.models.finance import Scholarship
from syncschool.models.student import Student
from syncschool.schemas.finance.requests import ScholarshipCreate, ScholarshipUpdate
from syncschool.schemas.finance.responses import ScholarshipResponse
from syncschool.services.base import TenantService


def to_scholarship_response(scholarship: Scholarship, student_count: int = 0) -> ScholarshipResponse:
    response = ScholarshipResponse.model_validate(scholarship)
    response.student_count = student_count
    return response


class ScholarshipService(TenantService):

    async def list_scholarships(self) -> List[Tuple[Scholarship, int]]:
        counts = (
            select(Student.scholarship_id, func.count(Student.id).label("student_count"))
            .where(Student.school_id == self.school_id, Student.deleted_at.is_(None))
            .group_by(Student.scholarship_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Scholarship, func.coalesce(counts.c.student_count, 0))
            .outerjoin(counts, counts.c.scholarship_id == Scholarship.id)
            .where(Scholarship.school_id == self.school_id)
            .order_by(Scholarship.created_at.desc(), Scholarship.id.desc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def _validate_name(self, name: str, exclude_id: int = None) -> None:
        query = select(Scholarship.id).where(Scholarship.school_id == self.school_id, Scholarship.name == name)
        if exclude_id:
            query = query.where(Scholarship.id != exclude_id)
        existing = await self.db.execute(query)
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A scholarship with this name already exists")

    async def create_scholarship(self, data: ScholarshipCreate) -> Scholarship:
        await self._validate_name(data.name.strip())
        scholarship = Scholarship(
            school_id=self.school_id,
            name=data.name.strip(),
            percentage=data.percentage,
            description=data.description,
        )
        async with self.transaction():
            self.db.add(scholarship)
        logger.info(f"Scholarship {scholarship.name} created for school {self.school_id}")
        return scholarship

    async def update_scholarship(self, scholarship_id: int, data: ScholarshipUpdate) -> Scholarship:
        scholarship = await self.get_owned(Scholarship, scholarship_id, "Scholarship not found")
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            changes["name"] = changes["name"].strip()
            await self._validate_name(changes["name"], exclude_id=scholarship.id)
        async with self.transaction():
            for field, value in changes.items():
                if value is not None or field == "description":
                    setattr(scholarship, field, value)
        return scholarship

    async def delete_scholarship(self, scholarship_id: int) -> None:
        scholarship = await self.get_owned(Scholarship, scholarship_id, "Scholarship not found")
        in_use = await self.count(
            select(Student.id).where(Student.scholarship_id == scholarship_id, Student.deleted_at.is_(None))
        )
        if in_use:
            raise BadRequestError("Cannot delete a scholarship that is assigned to students")
        async with self.transaction():
            await self.db.delete(scholarship)

    async def bulk_create(self, rows: List[ScholarshipCreate]) -> int:
        """Insert rows whose name is not already used in the school"""
        existing = await self.db.execute(select(Scholarship.name).where(Scholarship.school_id == self.school_id))
        taken = {name.lower() for name in existing.scalars().all()}

        new_rows = []
        for row in rows:
            name = row.name.strip()
            if name.lower() in taken:
                continue
            taken.add(name.lower())
            new_rows.append(Scholarship(
                school_id=self.school_id,
                name=name,
                percentage=row.percentage,
                description=row.description,
            ))

        if new_rows:
            async with self.transaction():
                self.db.add_all(new_rows)
        return len(new_rows)
