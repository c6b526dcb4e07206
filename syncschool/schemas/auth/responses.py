from typing import Optional

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import SubscriptionTier, UserRoleEnum


class UserResponse(APIModel):
    id: int
    email: str
    full_name: str
    role: UserRoleEnum
    school_id: Optional[int] = None
    is_active: bool = True


class TokenResponse(APIModel):
    token: str
    user: UserResponse
    tenant_slug: Optional[str] = None


class TenantLookupResponse(APIModel):
    id: int
    name: str
    slug: str
    logo_url: Optional[str] = None
    is_active: bool
    subscription_tier: SubscriptionTier
