from typing import List, Optional

from pydantic import Field

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import UserRoleEnum


class PushKeys(APIModel):
    p256dh: str
    auth: str


class PushSubscribeRequest(APIModel):
    # Left optional so an incomplete browser payload gets a specific message
    endpoint: Optional[str] = None
    keys: Optional[PushKeys] = None


class PushUnsubscribeRequest(APIModel):
    endpoint: str


class PushSendRequest(APIModel):
    title: str = Field(..., min_length=1, max_length=120)
    body: str = Field(..., min_length=1, max_length=500)
    url: Optional[str] = None
    target_roles: Optional[List[UserRoleEnum]] = None
