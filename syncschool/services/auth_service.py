from typing import List, Optional, Tuple

from sqlalchemy import select

from syncschool.core.errors import ConflictError, InvalidCredentialsException, NotFoundError
from syncschool.core.logging import logger
from syncschool.core.security import create_access_token, get_password_hash, verify_password
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.auth.requests import RegisterRequest
from syncschool.services.base import TenantService


class AuthService(TenantService):
    """Login and staff registration. `school` is the tenant named by the request, if any."""

    async def authenticate(self, email: str, password: str) -> Tuple[User, Optional[School]]:
        email = email.strip().lower()

        if self.school is not None:
            result = await self.db.execute(
                select(User).where(User.email == email, User.school_id == self.school.id)
            )
            user = result.scalar_one_or_none()
            if user is None or not verify_password(password, user.password_hash):
                logger.info(f"Failed login for {email} on tenant {self.school.slug}")
                raise InvalidCredentialsException("Invalid credentials")
        else:
            user = await self._match_without_tenant(email, password)

        if not user.is_active:
            logger.info(f"Login refused for inactive account {user.id}")
            raise InvalidCredentialsException("Invalid credentials or inactive account")

        school = await self.db.get(School, user.school_id) if user.school_id else None
        logger.info(f"User {user.id} logged in", extra={"user_id": user.id})
        return user, school

    async def _match_without_tenant(self, email: str, password: str) -> User:
        """
        The same email may exist in several schools. Keep the accounts whose
        password matches and prefer an active one in an active school.
        """
        result = await self.db.execute(select(User).where(User.email == email).order_by(User.id))
        candidates: List[User] = [
            u for u in result.scalars().all() if verify_password(password, u.password_hash)
        ]
        if not candidates:
            logger.info(f"Failed login for {email}")
            raise InvalidCredentialsException("Invalid credentials")

        for user in candidates:
            if not user.is_active:
                continue
            if user.school_id is None:
                return user
            school = await self.db.get(School, user.school_id)
            if school is not None and school.is_active:
                return user
        return candidates[0]

    async def register(self, data: RegisterRequest) -> User:
        email = data.email.lower()
        existing = await self.db.execute(
            select(User.id).where(User.email == email, User.school_id == self.school_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("User already exists")

        user = User(
            school_id=self.school_id,
            email=email,
            full_name=data.full_name.strip(),
            password_hash=get_password_hash(data.password),
            role=data.role,
            is_active=True,
        )
        async with self.transaction():
            self.db.add(user)
        logger.info(f"Registered {data.role.value} {user.id} in school {self.school_id}")
        return user

    async def get_school_by_slug(self, slug: str) -> School:
        result = await self.db.execute(select(School).where(School.slug == slug.lower()))
        school = result.scalar_one_or_none()
        if school is None:
            raise NotFoundError("School not found")
        return school

    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token(user.id, user.role, user.school_id)
