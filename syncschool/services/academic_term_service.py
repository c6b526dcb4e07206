from typing import List, Optional

from sqlalchemy import select, update

from syncschool.core.errors import BadRequestError, NotFoundError
from syncschool.core.logging import logger
from syncschool.models.academic import AcademicTerm
from syncschool.schemas.academic.requests import AcademicTermCreate, AcademicTermUpdate
from syncschool.services.base import TenantService


class AcademicTermService(TenantService):

    async def list_terms(self) -> List[AcademicTerm]:
        query = select(AcademicTerm).order_by(AcademicTerm.start_date.desc(), AcademicTerm.id.desc())
        if self.school_id is not None:
            query = query.where(AcademicTerm.school_id == self.school_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_active_term(self) -> Optional[AcademicTerm]:
        """Active term with the latest start date"""
        result = await self.db.execute(
            select(AcademicTerm)
            .where(AcademicTerm.school_id == self.school_id, AcademicTerm.is_active.is_(True))
            .order_by(AcademicTerm.start_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_current_term(self) -> AcademicTerm:
        term = await self.get_active_term()
        if term is None:
            raise NotFoundError("No active academic term")
        return term

    async def create_term(self, data: AcademicTermCreate) -> AcademicTerm:
        term = AcademicTerm(school_id=self.school_id, **data.model_dump())
        async with self.transaction():
            if term.is_active:
                await self._deactivate_all()
            self.db.add(term)
        logger.info(f"Academic term {term.name} created for school {self.school_id}")
        return term

    async def update_term(self, term_id: int, data: AcademicTermUpdate) -> AcademicTerm:
        term = await self.get_owned(AcademicTerm, term_id, "Academic term not found")
        # Explicit nulls leave the stored value alone
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        start = changes.get("start_date", term.start_date)
        end = changes.get("end_date", term.end_date)
        if end < start:
            raise BadRequestError("endDate must not be before startDate")

        async with self.transaction():
            for field, value in changes.items():
                setattr(term, field, value)
        return term

    async def activate_term(self, term_id: int) -> AcademicTerm:
        """Make this the school's only active term"""
        term = await self.get_owned(AcademicTerm, term_id, "Academic term not found")
        async with self.transaction():
            await self._deactivate_all()
            term.is_active = True
        logger.info(f"Academic term {term.id} activated for school {self.school_id}")
        return term

    async def _deactivate_all(self) -> None:
        await self.db.execute(
            update(AcademicTerm)
            .where(AcademicTerm.school_id == self.school_id, AcademicTerm.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
