from typing import List, Optional

from sqlalchemy import select

from syncschool.core.errors import ConflictError
from syncschool.core.logging import logger
from syncschool.models.academic import Subject
from syncschool.schemas.academic.requests import SubjectCreate, SubjectUpdate
from syncschool.services.base import TenantService

DUPLICATE_CODE_MESSAGE = "Subject with this code already exists"


class SubjectService(TenantService):

    async def validate_code(self, code: str, exclude_id: Optional[int] = None) -> None:
        """Validate subject code uniqueness within a school"""
        query = select(Subject.id).where(Subject.school_id == self.school_id, Subject.code == code)
        if exclude_id:
            query = query.where(Subject.id != exclude_id)
        existing = await self.db.execute(query)
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(DUPLICATE_CODE_MESSAGE)

    async def list_subjects(self) -> List[Subject]:
        query = select(Subject).order_by(Subject.name)
        if self.school_id is not None:
            query = query.where(Subject.school_id == self.school_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_subject(self, data: SubjectCreate) -> Subject:
        code = data.code.strip()
        await self.validate_code(code)

        subject = Subject(school_id=self.school_id, name=data.name.strip(), code=code)
        try:
            async with self.transaction():
                self.db.add(subject)
        except ConflictError:
            # Lost a race with a concurrent insert of the same code
            raise ConflictError(DUPLICATE_CODE_MESSAGE)
        logger.info(f"Subject {code} created for school {self.school_id}")
        return subject

    async def update_subject(self, subject_id: int, data: SubjectUpdate) -> Subject:
        subject = await self.get_owned(Subject, subject_id, "Subject not found")
        changes = data.model_dump(exclude_unset=True)
        if "code" in changes and changes["code"] is not None:
            changes["code"] = changes["code"].strip()
            await self.validate_code(changes["code"], exclude_id=subject.id)

        async with self.transaction():
            for field, value in changes.items():
                if value is not None:
                    setattr(subject, field, value)
        return subject

    async def delete_subject(self, subject_id: int) -> None:
        subject = await self.get_owned(Subject, subject_id, "Subject not found")
        async with self.transaction():
            await self.db.delete(subject)
        logger.info(f"Subject {subject_id} deleted from school {self.school_id}")

    async def get_many(self, subject_ids: List[int]) -> List[Subject]:
        if not subject_ids:
            return []
        result = await self.db.execute(
            select(Subject).where(Subject.school_id == self.school_id, Subject.id.in_(subject_ids))
        )
        return list(result.scalars().all())
