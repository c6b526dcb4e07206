from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from syncschool.models.base import TenantModel, TimestampMixin, utcnow
from syncschool.schemas.enums import PaymentMethod, PaymentStatus


class Scholarship(TimestampMixin, TenantModel):
    __tablename__ = "scholarships"
    __table_args__ = (
        UniqueConstraint("school_id", "name", name="uq_scholarships_name_school"),
    )

    name = Column(String(100), nullable=False)
    percentage = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    description = Column(Text, nullable=True)

    students = relationship("Student", back_populates="scholarship")


class StudentFeeStructure(TenantModel):
    """An amount a student owes for a term or item"""
    __tablename__ = "student_fee_structures"

    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_term_id = Column(Integer, ForeignKey("academic_terms.id", ondelete="SET NULL"), nullable=True)
    description = Column(String(255), nullable=False)
    amount_due = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Payment(TimestampMixin, TenantModel):
    __tablename__ = "payments"

    transaction_id = Column(String(20), nullable=False, unique=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    method = Column(Enum(PaymentMethod, name="payment_method"), nullable=False)
    status = Column(Enum(PaymentStatus, name="payment_status"), default=PaymentStatus.COMPLETED, nullable=False)
    notes = Column(Text, nullable=True)
    payment_date = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    recorded_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    voided_at = Column(DateTime(timezone=True), nullable=True)
    voided_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    void_reason = Column(Text, nullable=True)

    student = relationship("Student", lazy="selectin")

    def __repr__(self):
        return f"<Payment(transaction_id='{self.transaction_id}', amount={self.amount}, status='{self.status}')>"
