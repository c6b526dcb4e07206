from sqlalchemy import Column, ForeignKey, Integer, String, Text

from syncschool.models.base import TenantModel, TimestampMixin


class PushSubscription(TimestampMixin, TenantModel):
    """Browser push endpoint registered by a signed-in user"""
    __tablename__ = "push_subscriptions"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    endpoint = Column(Text, nullable=False, unique=True)
    p256dh = Column(String(255), nullable=False)
    auth = Column(String(255), nullable=False)
    user_agent = Column(String(255), nullable=True)
