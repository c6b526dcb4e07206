import json
from typing import Iterable, List, Optional

from fastapi.concurrency import run_in_threadpool
from pywebpush import WebPushException, webpush
from sqlalchemy import delete, select

from syncschool.core.config import get_push_settings
from syncschool.core.errors import BadRequestError, ConfigurationError
from syncschool.core.logging import logger
from syncschool.models.communication import PushSubscription
from syncschool.models.user import User
from syncschool.schemas.communication.requests import PushSendRequest, PushSubscribeRequest
from syncschool.schemas.communication.responses import PushSendResponse
from syncschool.schemas.enums import UserRoleEnum
from syncschool.services.base import TenantService

# Push services answer these for endpoints that will never accept another message
GONE_STATUSES = {404, 410}


class PushService(TenantService):
    """Web push delivery to the browsers registered for a school"""

    def __init__(self, db, school=None, push_settings: Optional[dict] = None):
        super().__init__(db, school)
        self.config = push_settings or get_push_settings()

    def public_key(self) -> str:
        if not self.config["enabled"]:
            raise ConfigurationError("Push notifications are not configured")
        return self.config["public_key"]

    async def subscribe(self, user: User, data: PushSubscribeRequest, user_agent: Optional[str] = None) -> PushSubscription:
        if not data.endpoint or data.keys is None:
            raise BadRequestError("Invalid subscription data")

        result = await self.db.execute(select(PushSubscription).where(PushSubscription.endpoint == data.endpoint))
        subscription = result.scalar_one_or_none()
        async with self.transaction():
            if subscription is None:
                subscription = PushSubscription(endpoint=data.endpoint)
                self.db.add(subscription)
            # A browser endpoint belongs to whoever registered it last
            subscription.school_id = self.school_id
            subscription.user_id = user.id
            subscription.p256dh = data.keys.p256dh
            subscription.auth = data.keys.auth
            subscription.user_agent = (user_agent or "")[:255] or None
        logger.info(f"Push subscription saved for user {user.id}")
        return subscription

    async def unsubscribe(self, user: User, endpoint: str) -> None:
        async with self.transaction():
            await self.db.execute(
                delete(PushSubscription).where(
                    PushSubscription.endpoint == endpoint,
                    PushSubscription.user_id == user.id,
                )
            )

    async def _targets(self, roles: Optional[Iterable[UserRoleEnum]]) -> List[PushSubscription]:
        query = select(PushSubscription).where(PushSubscription.school_id == self.school_id)
        if roles:
            query = query.join(User, User.id == PushSubscription.user_id).where(User.role.in_(list(roles)))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    def _deliver(self, subscription: PushSubscription, payload: str) -> None:
        webpush(
            subscription_info={
                "endpoint": subscription.endpoint,
                "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
            },
            data=payload,
            vapid_private_key=self.config["private_key"],
            vapid_claims=dict(self.config["claims"]),
        )

    async def send(self, data: PushSendRequest) -> PushSendResponse:
        """
        Deliver one notification to every matching subscription, once each.
        Endpoints the push service reports as gone are deleted.
        """
        if not self.config["enabled"]:
            raise ConfigurationError("Push notifications are not configured")

        payload = json.dumps({"title": data.title, "body": data.body, "url": data.url or "/"})
        sent = failed = 0
        gone: List[int] = []

        for subscription in await self._targets(data.target_roles):
            try:
                await run_in_threadpool(self._deliver, subscription, payload)
                sent += 1
            except WebPushException as e:
                failed += 1
                status_code = e.response.status_code if e.response is not None else None
                if status_code in GONE_STATUSES:
                    gone.append(subscription.id)
                logger.warning(f"Push to subscription {subscription.id} failed ({status_code}): {e}")

        if gone:
            async with self.transaction():
                await self.db.execute(delete(PushSubscription).where(PushSubscription.id.in_(gone)))

        logger.info(f"Push '{data.title}' for school {self.school_id}: {sent} sent, {failed} failed")
        return PushSendResponse(sent=sent, failed=failed, removed=len(gone))
