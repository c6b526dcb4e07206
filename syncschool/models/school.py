from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Integer, String
from sqlalchemy.orm import relationship

from syncschool.models.base import Base, TimestampMixin
from syncschool.schemas.enums import SubscriptionStatus, SubscriptionTier


class School(TimestampMixin, Base):
    """
    A tenant. Every school-owned row hangs off this table, and the
    subscription state that gates the school's access lives here too.
    """
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True)

    # Basic information
    name = Column(String(255), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)
    logo_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Subscription
    subscription_tier = Column(
        Enum(SubscriptionTier, name="subscription_tier"),
        default=SubscriptionTier.FREE,
        nullable=False,
    )
    subscription_status = Column(
        Enum(SubscriptionStatus, name="subscription_status"),
        default=SubscriptionStatus.TRIAL,
        nullable=False,
    )
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    subscription_started_at = Column(DateTime(timezone=True), nullable=True)
    subscription_ends_at = Column(DateTime(timezone=True), nullable=True)

    # Plan limits; 0 means unlimited
    max_students = Column(Integer, default=10, nullable=False)
    max_teachers = Column(Integer, default=2, nullable=False)
    max_users = Column(Integer, default=5, nullable=False)
    max_classes = Column(Integer, default=3, nullable=False)
    features = Column(JSON, default=list, nullable=False)

    users = relationship(
        "User",
        back_populates="school",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def has_feature(self, feature: str) -> bool:
        return feature in (self.features or [])

    def __repr__(self):
        return f"<School(id={self.id}, slug='{self.slug}', tier='{self.subscription_tier}')>"
