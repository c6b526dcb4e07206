from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import declarative_base, declared_attr

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class TenantModel(Base):
    """
    Base for every row owned by a school.
    Each query against these tables must filter on school_id.
    """
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)

    @declared_attr
    def school_id(cls):
        return Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
