from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from syncschool.models.base import TenantModel, TimestampMixin, utcnow
from syncschool.schemas.enums import Gender, StudentStatus


class Student(TimestampMixin, TenantModel):
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("school_id", "admission_number", name="uq_students_admission_school"),
    )

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, index=True)
    admission_number = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(Enum(Gender, name="gender"), nullable=False)
    guardian_name = Column(String(255), nullable=False)
    guardian_phone = Column(String(30), nullable=False)
    guardian_email = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    status = Column(Enum(StudentStatus, name="student_status"), default=StudentStatus.ACTIVE, nullable=False)

    class_id = Column(Integer, ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False, index=True)
    scholarship_id = Column(Integer, ForeignKey("scholarships.id", ondelete="SET NULL"), nullable=True)
    parent_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Soft delete keeps payment and attendance history intact
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    class_ = relationship("Class", back_populates="students", lazy="selectin")
    scholarship = relationship("Scholarship", back_populates="students", lazy="selectin")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Student(id={self.id}, admission_number='{self.admission_number}')>"


class ClassMovementLog(TenantModel):
    """One row per class change of a student"""
    __tablename__ = "class_movement_logs"

    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    from_class_id = Column(Integer, ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)
    to_class_id = Column(Integer, ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)
    reason = Column(Text, nullable=True)
    moved_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
