from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select

from syncschool.core.config import settings
from syncschool.core.errors import ConflictError, NotFoundError
from syncschool.core.logging import logger
from syncschool.core.security import get_password_hash
from syncschool.models.base import utcnow
from syncschool.models.school import School
from syncschool.models.subscription import SubscriptionPlan
from syncschool.models.user import User
from syncschool.schemas.enums import SubscriptionStatus, SubscriptionTier, UserRoleEnum
from syncschool.schemas.school.requests import SchoolCreate
from syncschool.services.base import TenantService


def apply_plan_limits(school: School, plan: SubscriptionPlan) -> None:
    school.subscription_tier = plan.tier
    school.max_students = plan.max_students
    school.max_teachers = plan.max_teachers
    school.max_users = plan.max_users
    school.max_classes = plan.max_classes
    school.features = list(plan.features or [])


class SchoolService(TenantService):
    """Platform-level school administration"""

    async def create_school(self, data: SchoolCreate) -> School:
        existing = await self.db.execute(select(School.id).where(School.slug == data.slug))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("A school with this slug already exists")

        school = School(
            name=data.name.strip(),
            slug=data.slug,
            email=data.email,
            phone=data.phone,
            address=data.address,
            logo_url=data.logo_url,
            is_active=True,
            subscription_status=SubscriptionStatus.TRIAL,
            trial_ends_at=utcnow() + timedelta(days=settings.TRIAL_DAYS),
        )
        free_plan = await self._plan_for_tier(SubscriptionTier.FREE)
        if free_plan is not None:
            apply_plan_limits(school, free_plan)

        async with self.transaction():
            self.db.add(school)
            await self.db.flush()
            self.db.add(User(
                school_id=school.id,
                email=data.admin_email.lower(),
                full_name=data.admin_full_name.strip(),
                password_hash=get_password_hash(data.admin_password),
                role=UserRoleEnum.SUPER_ADMIN,
                is_active=True,
            ))

        logger.info(f"School {school.slug} created with trial ending {school.trial_ends_at}")
        return school

    async def list_schools(self, search: Optional[str] = None) -> List[School]:
        query = select(School).order_by(School.created_at.desc(), School.id.desc())
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(School.name.ilike(pattern) | School.slug.ilike(pattern))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def set_active(self, school_id: int, is_active: bool) -> School:
        school = await self.db.get(School, school_id)
        if school is None:
            raise NotFoundError("School not found")
        async with self.transaction():
            school.is_active = is_active
        logger.info(f"School {school.slug} {'activated' if is_active else 'deactivated'}")
        return school

    async def _plan_for_tier(self, tier: SubscriptionTier) -> Optional[SubscriptionPlan]:
        result = await self.db.execute(select(SubscriptionPlan).where(SubscriptionPlan.tier == tier))
        return result.scalar_one_or_none()
