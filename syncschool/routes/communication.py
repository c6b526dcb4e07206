from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_current_active_user, get_tenant
from syncschool.core.permissions import require_school_admin
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.common import MessageResponse
from syncschool.schemas.communication import (
    PushSendRequest,
    PushSendResponse,
    PushSubscribeRequest,
    PushUnsubscribeRequest,
    VapidKeyResponse,
)
from syncschool.services.push_service import PushService

router = APIRouter(tags=["Communication"])


def get_push_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> PushService:
    return PushService(db, school)


@router.get("/push/vapid-public-key", response_model=VapidKeyResponse)
async def get_vapid_public_key(db: AsyncSession = Depends(get_db)):
    return VapidKeyResponse(public_key=PushService(db).public_key())


@router.post("/push/subscribe", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def subscribe(
    request: Request,
    body: PushSubscribeRequest,
    current_user: User = Depends(get_current_active_user),
    push_service: PushService = Depends(get_push_service),
):
    await push_service.subscribe(current_user, body, user_agent=request.headers.get("user-agent"))
    return MessageResponse(message="Subscribed to push notifications")


@router.post("/push/unsubscribe", status_code=status.HTTP_204_NO_CONTENT)
async def unsubscribe(
    body: PushUnsubscribeRequest,
    current_user: User = Depends(get_current_active_user),
    push_service: PushService = Depends(get_push_service),
) -> Response:
    await push_service.unsubscribe(current_user, body.endpoint)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/push/send", response_model=PushSendResponse)
async def send_notification(
    body: PushSendRequest,
    current_user: User = Depends(require_school_admin()),
    push_service: PushService = Depends(get_push_service),
):
    return await push_service.send(body)
