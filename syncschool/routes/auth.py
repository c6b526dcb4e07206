from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_current_active_user, get_request_tenant
from syncschool.core.errors import TenantContextError
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TenantLookupResponse,
    TokenResponse,
    UserResponse,
)
from syncschool.services.auth_service import AuthService

router = APIRouter(tags=["Authentication"])


# Service dependencies
def get_auth_service(
    db: AsyncSession = Depends(get_db),
    school: Optional[School] = Depends(get_request_tenant),
) -> AuthService:
    return AuthService(db, school)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """Sign in, within the tenant named by X-Tenant-Slug when one is sent"""
    user, school = await auth_service.authenticate(request.email, request.password)
    return TokenResponse(
        token=auth_service.issue_token(user),
        user=UserResponse.model_validate(user),
        tenant_slug=school.slug if school else None,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    if auth_service.school is None:
        raise TenantContextError()
    user = await auth_service.register(request)
    return TokenResponse(
        token=auth_service.issue_token(user),
        user=UserResponse.model_validate(user),
        tenant_slug=auth_service.school.slug,
    )


@router.get("/tenant/{slug}", response_model=TenantLookupResponse)
async def get_tenant_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    return await AuthService(db).get_school_by_slug(slug)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)):
    return current_user
