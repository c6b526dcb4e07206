from datetime import datetime
from typing import Optional

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import SubscriptionStatus, SubscriptionTier


class SchoolResponse(APIModel):
    id: int
    name: str
    slug: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool
    subscription_tier: SubscriptionTier
    subscription_status: SubscriptionStatus
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None
    created_at: datetime
