from typing import Optional

from fastapi import Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.config import settings
from syncschool.core.database import get_db
from syncschool.core.dependencies import get_current_active_user, get_optional_tenant
from syncschool.core.errors import FeatureNotAvailable, SubscriptionRequired
from syncschool.core.logging import logger
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.enums import LimitedResource, UserRoleEnum
from syncschool.services.subscription_service import (
    UPGRADE_URL,
    SubscriptionService,
    evaluate_access,
)


def _bypasses_billing(user: User, school: Optional[School]) -> bool:
    return user.role == UserRoleEnum.SYSTEM_OWNER or school is None


async def require_active_subscription(
    response: Response,
    current_user: User = Depends(get_current_active_user),
    school: Optional[School] = Depends(get_optional_tenant),
) -> Optional[School]:
    """
    Block schools whose trial or paid period is over, or which have been
    suspended. Close to expiry the response carries X-Subscription-Warning.
    """
    if _bypasses_billing(current_user, school):
        return school

    check = evaluate_access(school)
    if not check.allowed:
        logger.info(f"Access blocked for school {school.slug}: {check.reason}")
        raise SubscriptionRequired(
            check.reason,
            details={
                "status": check.status.value,
                "tier": check.tier.value,
                "upgradeRequired": True,
                "upgradeUrl": UPGRADE_URL,
            },
        )

    if check.days_until_expiry is not None and check.days_until_expiry <= settings.SUBSCRIPTION_WARNING_DAYS:
        response.headers["X-Subscription-Warning"] = f"Subscription expires in {check.days_until_expiry} days"
    return school


def require_resource_limit(resource: LimitedResource, increment: int = 1):
    """403 when adding `increment` more of `resource` would pass the plan's maximum"""
    async def checker(
        current_user: User = Depends(get_current_active_user),
        school: Optional[School] = Depends(get_optional_tenant),
        db: AsyncSession = Depends(get_db),
    ) -> Optional[School]:
        if not _bypasses_billing(current_user, school):
            await SubscriptionService(db, school).enforce_limit(resource, increment)
        return school

    return checker


def require_feature(feature: str):
    async def checker(
        current_user: User = Depends(get_current_active_user),
        school: Optional[School] = Depends(get_optional_tenant),
    ) -> Optional[School]:
        if _bypasses_billing(current_user, school) or school.has_feature(feature):
            return school
        raise FeatureNotAvailable(
            f"The {feature.replace('_', ' ')} feature is not included in your plan",
            details={
                "feature": feature,
                "tier": school.subscription_tier.value,
                "upgradeRequired": True,
                "upgradeUrl": UPGRADE_URL,
            },
        )

    return checker


async def enforce_bulk_limit(
    db: AsyncSession,
    current_user: User,
    school: Optional[School],
    resource: LimitedResource,
    count: int,
) -> None:
    """Limit check for endpoints whose batch size is only known from the body"""
    if count and not _bypasses_billing(current_user, school):
        await SubscriptionService(db, school).enforce_limit(resource, count)


async def remaining_capacity(
    db: AsyncSession,
    current_user: User,
    school: Optional[School],
    resource: LimitedResource,
) -> Optional[int]:
    if _bypasses_billing(current_user, school):
        return None
    return await SubscriptionService(db, school).remaining_capacity(resource)
