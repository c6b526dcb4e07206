from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from syncschool.models.base import Base, TimestampMixin
from syncschool.schemas.enums import UserRoleEnum


class User(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", "school_id", name="uq_users_email_school"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Nullable so the platform owner can exist outside any school
    school_id = Column(Integer, ForeignKey("schools.id", ondelete="CASCADE"), nullable=True, index=True)
    email = Column(String(255), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRoleEnum, name="user_role"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    school = relationship("School", back_populates="users")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
