from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from syncschool.models.base import Base, TenantModel, TimestampMixin, utcnow
from syncschool.schemas.enums import (
    BillingCycle,
    InvoiceStatus,
    PaymentStatus,
    SubscriptionTier,
)


class SubscriptionPlan(TimestampMixin, Base):
    """Platform-wide catalogue entry; not owned by any school"""
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    tier = Column(Enum(SubscriptionTier, name="subscription_tier"), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    monthly_price = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    yearly_price = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    price_per_student = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    included_students = Column(Integer, default=0, nullable=False)
    max_students = Column(Integer, default=0, nullable=False)
    max_teachers = Column(Integer, default=0, nullable=False)
    max_users = Column(Integer, default=0, nullable=False)
    max_classes = Column(Integer, default=0, nullable=False)
    features = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_popular = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    def __repr__(self):
        return f"<SubscriptionPlan(tier='{self.tier}', monthly={self.monthly_price})>"


class SubscriptionPayment(TimestampMixin, TenantModel):
    __tablename__ = "subscription_payments"

    plan_id = Column(Integer, ForeignKey("subscription_plans.id", ondelete="RESTRICT"), nullable=False)
    billing_cycle = Column(Enum(BillingCycle, name="billing_cycle"), nullable=False)
    base_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    student_count = Column(Integer, default=0, nullable=False)
    overage_students = Column(Integer, default=0, nullable=False)
    overage_amount = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    currency = Column(String(3), default="ZMW", nullable=False)
    payment_method = Column(String(50), nullable=True)
    status = Column(Enum(PaymentStatus, name="payment_status"), default=PaymentStatus.PENDING, nullable=False)
    period_start = Column(DateTime(timezone=True), nullable=False)
    period_end = Column(DateTime(timezone=True), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    external_ref = Column(String(100), nullable=True)
    receipt_number = Column(String(50), nullable=True, unique=True)

    plan = relationship("SubscriptionPlan", lazy="selectin")
    school = relationship("School", lazy="selectin")
    invoice = relationship("Invoice", back_populates="subscription_payment", uselist=False)


class Invoice(TimestampMixin, TenantModel):
    __tablename__ = "invoices"

    invoice_number = Column(String(30), nullable=False, unique=True, index=True)
    subscription_payment_id = Column(
        Integer,
        ForeignKey("subscription_payments.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    status = Column(Enum(InvoiceStatus, name="invoice_status"), default=InvoiceStatus.DRAFT, nullable=False)
    subtotal = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    tax_amount = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    discount_amount = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    paid_amount = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    balance_amount = Column(Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    currency = Column(String(3), default="ZMW", nullable=False)
    issue_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False)
    paid_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="InvoiceItem.id",
    )
    school = relationship("School", lazy="selectin")
    subscription_payment = relationship("SubscriptionPayment", back_populates="invoice", lazy="selectin")


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)

    invoice = relationship("Invoice", back_populates="items")
