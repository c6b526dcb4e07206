from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.config import settings
from syncschool.core.database import get_db
from syncschool.core.errors import (
    AuthenticationError,
    NotFoundError,
    PermissionDenied,
    TenantContextError,
)
from syncschool.core.security import verify_token
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.enums import UserRoleEnum

# OAuth2 scheme for token authentication; missing tokens are reported by get_current_user
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not token:
        raise AuthenticationError("Not authenticated")

    payload = verify_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError("Could not validate credentials")

    user = await db.get(User, user_id)
    if not user:
        raise AuthenticationError("Invalid token - User not found")

    request.state.user_id = user.id
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Verify user is active"""
    if not current_user.is_active:
        raise AuthenticationError("Invalid credentials or inactive account")
    return current_user


async def _school_from_headers(request: Request, db: AsyncSession) -> Optional[School]:
    slug = request.headers.get(settings.TENANT_HEADER)
    tenant_id = request.headers.get(settings.TENANT_ID_HEADER)

    if slug:
        result = await db.execute(select(School).where(School.slug == slug.strip().lower()))
        school = result.scalar_one_or_none()
    elif tenant_id:
        if not tenant_id.strip().isdigit():
            raise NotFoundError("School not found")
        school = await db.get(School, int(tenant_id))
    else:
        return None

    if not school:
        raise NotFoundError("School not found")
    return school


def _check_school_active(school: Optional[School]) -> Optional[School]:
    if school is not None and not school.is_active:
        raise PermissionDenied("School account is inactive")
    return school


async def get_request_tenant(request: Request, db: AsyncSession = Depends(get_db)) -> Optional[School]:
    """
    Tenant named by the request itself, used before anyone is signed in
    (login, public lookups). Falls back to DEFAULT_TENANT_SLUG when set.
    """
    school = await _school_from_headers(request, db)
    if school is None and settings.DEFAULT_TENANT_SLUG:
        result = await db.execute(select(School).where(School.slug == settings.DEFAULT_TENANT_SLUG))
        school = result.scalar_one_or_none()
    return _check_school_active(school)


async def get_optional_tenant(
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> Optional[School]:
    """
    School the current request acts on.

    Staff and parents always act on their own school. The platform owner
    picks one with the tenant headers and gets None without them.
    """
    if current_user.role == UserRoleEnum.SYSTEM_OWNER:
        school = await _school_from_headers(request, db)
    elif current_user.school_id is not None:
        school = await db.get(School, current_user.school_id)
    else:
        school = None

    school = _check_school_active(school)
    if school is not None:
        request.state.tenant_id = school.id
    return school


async def get_tenant(school: Optional[School] = Depends(get_optional_tenant)) -> School:
    if school is None:
        raise TenantContextError()
    return school
