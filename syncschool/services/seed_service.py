from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.config import settings
from syncschool.core.database import Database
from syncschool.core.logging import logger
from syncschool.core.security import get_password_hash
from syncschool.models.user import User
from syncschool.schemas.enums import UserRoleEnum
from syncschool.services.subscription_service import seed_plans


async def create_system_owner(db: AsyncSession) -> User:
    """The platform account; it belongs to no school."""
    email = settings.SYSTEM_OWNER_EMAIL.lower()
    result = await db.execute(
        select(User).where(User.email == email, User.role == UserRoleEnum.SYSTEM_OWNER)
    )
    owner = result.scalar_one_or_none()

    if not owner:
        owner = User(
            school_id=None,
            email=email,
            full_name="System Owner",
            password_hash=get_password_hash(settings.SYSTEM_OWNER_PASSWORD.get_secret_value()),
            role=UserRoleEnum.SYSTEM_OWNER,
            is_active=True,
        )
        db.add(owner)
        await db.flush()
        logger.info("System owner created successfully")
    else:
        logger.info("System owner already exists")
    return owner


async def seed_database(database: Database) -> None:
    async with database.session() as db:
        await seed_plans(db)
        await create_system_owner(db)
