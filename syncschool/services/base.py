from contextlib import asynccontextmanager
from typing import Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.errors import ConflictError, NotFoundError
from syncschool.core.logging import logger
from syncschool.models.school import School

ModelT = TypeVar("ModelT")


class TenantService:
    """Service bound to one session and, for school-owned data, one school"""

    def __init__(self, db: AsyncSession, school: Optional[School] = None):
        self.db = db
        self.school = school

    @property
    def school_id(self) -> Optional[int]:
        return self.school.id if self.school is not None else None

    @asynccontextmanager
    async def transaction(self):
        """Commit on success; roll back and re-raise otherwise"""
        try:
            yield
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Integrity error: {e.orig}")
            raise ConflictError()
        except Exception:
            await self.db.rollback()
            raise

    async def get_owned(self, model: Type[ModelT], obj_id: int, message: str) -> ModelT:
        """Fetch a row by id, treating rows of other schools as missing"""
        query = select(model).where(model.id == obj_id)
        if self.school_id is not None:
            query = query.where(model.school_id == self.school_id)
        result = await self.db.execute(query)
        obj = result.scalar_one_or_none()
        if obj is None:
            raise NotFoundError(message)
        return obj

    async def count(self, query) -> int:
        result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        return result.scalar_one()
