from dataclasses import dataclass
from datetime import datetime, timedelta
from io import BytesIO
from typing import List, Optional, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy import select

from syncschool.core.config import settings
from syncschool.core.errors import BadRequestError, NotFoundError
from syncschool.core.logging import logger
from syncschool.models.base import as_utc, utcnow
from syncschool.models.subscription import Invoice, InvoiceItem, SubscriptionPayment
from syncschool.schemas.enums import InvoiceStatus, PaymentStatus
from syncschool.services.base import TenantService

PRIMARY = colors.HexColor("#2563eb")
SECONDARY = colors.HexColor("#64748b")
TEXT = colors.HexColor("#1e293b")
RULE = colors.HexColor("#e2e8f0")
STRIPE = colors.HexColor("#f8fafc")
PAID_GREEN = colors.HexColor("#059669")


@dataclass
class LineItem:
    description: str
    quantity: int
    unit_price: float
    amount: float


@dataclass
class InvoiceDocument:
    """Everything drawn on an invoice PDF"""
    invoice_number: str
    issue_date: datetime
    school_name: str
    items: List[LineItem]
    subtotal: float
    total: float
    currency: str
    due_date: Optional[datetime] = None
    school_address: Optional[str] = None
    school_email: Optional[str] = None
    school_phone: Optional[str] = None
    tax: float = 0.0
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None


def build_invoice_items(payment: SubscriptionPayment) -> List[LineItem]:
    """
    One line for the plan and, when the school was over the plan's included
    students, one line for the extra students. The extra line's amount is the
    overage recorded on the payment; its unit price is derived from it.
    """
    base = float(payment.base_amount)
    items = [LineItem(
        description=f"{payment.plan.name} Plan - {payment.billing_cycle.value}",
        quantity=1,
        unit_price=base,
        amount=base,
    )]
    if payment.overage_students and payment.overage_students > 0:
        overage = float(payment.overage_amount)
        items.append(LineItem(
            description=f"Additional Students ({payment.overage_students} students)",
            quantity=payment.overage_students,
            unit_price=round(overage / payment.overage_students, 2),
            amount=overage,
        ))
    return items


def _fmt_date(value: Optional[datetime]) -> str:
    return as_utc(value).strftime("%d %b %Y") if value else ""


def _money(currency: str, value: float) -> str:
    return f"{currency} {value:,.2f}"


def render_invoice_pdf(doc: InvoiceDocument) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    def y(top: float) -> float:
        # Layout is measured from the top of the page
        return height - top

    # Header
    c.setFillColor(PRIMARY)
    c.setFont("Helvetica-Bold", 28)
    c.drawString(50, y(75), "INVOICE")
    c.setFillColor(SECONDARY)
    c.setFont("Helvetica", 10)
    c.drawString(50, y(95), f"Invoice #{doc.invoice_number}")
    c.drawString(50, y(110), f"Date: {_fmt_date(doc.issue_date)}")
    if doc.due_date:
        c.drawString(50, y(125), f"Due Date: {_fmt_date(doc.due_date)}")

    if doc.paid_at:
        c.setFillColor(PAID_GREEN)
        c.setFont("Helvetica-Bold", 12)
        c.drawRightString(545, y(60), "PAID")
        c.setFillColor(SECONDARY)
        c.setFont("Helvetica", 9)
        c.drawRightString(545, y(75), f"Paid on {_fmt_date(doc.paid_at)}")

    c.setFillColor(TEXT)
    c.setFont("Helvetica", 10)
    c.drawRightString(545, y(110), settings.APP_NAME)
    c.setFillColor(SECONDARY)
    c.setFont("Helvetica", 9)
    c.drawRightString(545, y(125), "Platform Subscription")

    c.setStrokeColor(RULE)
    c.line(50, y(150), 545, y(150))

    # Bill to
    c.setFillColor(PRIMARY)
    c.setFont("Helvetica-Bold", 12)
    c.drawString(50, y(175), "BILL TO:")
    c.setFillColor(TEXT)
    c.setFont("Helvetica", 11)
    c.drawString(50, y(195), doc.school_name)

    top = 210
    c.setFillColor(SECONDARY)
    c.setFont("Helvetica", 9)
    for line in (doc.school_address, doc.school_email, doc.school_phone):
        if line:
            c.drawString(50, y(top), line)
            top += 15

    # Items table
    top += 20
    c.setFillColor(PRIMARY)
    c.rect(50, y(top + 25), 495, 25, fill=1, stroke=0)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(60, y(top + 16), "Description")
    c.drawCentredString(345, y(top + 16), "Qty")
    c.drawRightString(455, y(top + 16), "Unit Price")
    c.drawRightString(540, y(top + 16), "Amount")

    top += 25
    c.setFont("Helvetica", 9)
    for index, item in enumerate(doc.items):
        if index % 2 == 0:
            c.setFillColor(STRIPE)
            c.rect(50, y(top + 25), 495, 25, fill=1, stroke=0)
        c.setFillColor(TEXT)
        c.drawString(60, y(top + 16), item.description)
        c.drawCentredString(345, y(top + 16), str(item.quantity))
        c.drawRightString(455, y(top + 16), _money(doc.currency, item.unit_price))
        c.drawRightString(540, y(top + 16), _money(doc.currency, item.amount))
        top += 25

    # Totals
    top += 25
    c.setFillColor(SECONDARY)
    c.drawString(380, y(top), "Subtotal:")
    c.setFillColor(TEXT)
    c.drawRightString(540, y(top), _money(doc.currency, doc.subtotal))
    if doc.tax:
        top += 20
        c.setFillColor(SECONDARY)
        c.drawString(380, y(top), "Tax:")
        c.setFillColor(TEXT)
        c.drawRightString(540, y(top), _money(doc.currency, doc.tax))

    top += 15
    c.setStrokeColor(RULE)
    c.line(380, y(top), 545, y(top))
    top += 20
    c.setFillColor(PRIMARY)
    c.setFont("Helvetica-Bold", 12)
    c.drawString(380, y(top), "TOTAL:")
    c.drawRightString(540, y(top), _money(doc.currency, doc.total))

    if doc.payment_method:
        top += 40
        c.setFillColor(SECONDARY)
        c.setFont("Helvetica", 9)
        c.drawString(50, y(top), f"Payment Method: {doc.payment_method.replace('_', ' ').title()}")

    if doc.notes:
        top += 40
        c.setFillColor(PRIMARY)
        c.setFont("Helvetica-Bold", 10)
        c.drawString(50, y(top), "Notes:")
        top += 18
        c.setFillColor(SECONDARY)
        c.setFont("Helvetica", 9)
        for line in doc.notes.splitlines():
            c.drawString(50, y(top), line)
            top += 12

    # Footer
    c.setStrokeColor(RULE)
    c.line(50, y(750), 545, y(750))
    c.setFillColor(SECONDARY)
    c.setFont("Helvetica", 8)
    c.drawCentredString(width / 2, y(765), "Thank you for your business!")
    c.drawCentredString(width / 2, y(780), f"{settings.APP_NAME} Platform")

    c.showPage()
    c.save()
    pdf_bytes = buf.getvalue()
    buf.close()
    return pdf_bytes


def _period_note(payment: SubscriptionPayment) -> str:
    return f"Subscription period: {_fmt_date(payment.period_start)} - {_fmt_date(payment.period_end)}"


def document_for_invoice(invoice: Invoice) -> InvoiceDocument:
    school = invoice.school
    payment = invoice.subscription_payment
    return InvoiceDocument(
        invoice_number=invoice.invoice_number,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        school_name=school.name,
        school_address=school.address,
        school_email=school.email,
        school_phone=school.phone,
        items=[LineItem(i.description, i.quantity, float(i.unit_price), float(i.amount)) for i in invoice.items],
        subtotal=float(invoice.subtotal),
        tax=float(invoice.tax_amount or 0),
        total=float(invoice.total_amount),
        currency=invoice.currency,
        payment_method=payment.payment_method if payment else None,
        paid_at=invoice.paid_date,
        notes=invoice.notes,
    )


def document_for_payment(payment: SubscriptionPayment) -> InvoiceDocument:
    """Invoice view of a payment that has no stored invoice yet"""
    school = payment.school
    total = float(payment.total_amount)
    return InvoiceDocument(
        invoice_number=payment.receipt_number or f"SUB-{payment.id:06d}",
        issue_date=payment.created_at,
        due_date=payment.period_end,
        school_name=school.name,
        school_address=school.address,
        school_email=school.email,
        school_phone=school.phone,
        items=build_invoice_items(payment),
        subtotal=total,
        total=total,
        currency=payment.currency,
        payment_method=payment.payment_method,
        paid_at=payment.paid_at,
        notes=_period_note(payment),
    )


class InvoiceService(TenantService):
    """
    Invoices for subscription payments. Without a school the service works
    across the whole platform.
    """

    async def _next_invoice_number(self) -> str:
        prefix = f"INV-{utcnow().year}-"
        issued = await self.count(select(Invoice.id).where(Invoice.invoice_number.like(f"{prefix}%")))
        return f"{prefix}{issued + 1:06d}"

    async def _payment(self, payment_id: int) -> SubscriptionPayment:
        query = select(SubscriptionPayment).where(SubscriptionPayment.id == payment_id)
        if self.school_id is not None:
            query = query.where(SubscriptionPayment.school_id == self.school_id)
        result = await self.db.execute(query)
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    async def _invoice_for_payment(self, payment_id: int) -> Optional[Invoice]:
        result = await self.db.execute(select(Invoice).where(Invoice.subscription_payment_id == payment_id))
        return result.scalar_one_or_none()

    async def generate(self, payment_id: int, notes: Optional[str] = None) -> Invoice:
        payment = await self._payment(payment_id)
        if await self._invoice_for_payment(payment.id) is not None:
            raise BadRequestError("Invoice already exists for this payment")

        paid = payment.status == PaymentStatus.COMPLETED
        total = float(payment.total_amount)
        now = utcnow()
        invoice = Invoice(
            school_id=payment.school_id,
            invoice_number=await self._next_invoice_number(),
            subscription_payment_id=payment.id,
            status=InvoiceStatus.PAID if paid else InvoiceStatus.SENT,
            subtotal=total,
            tax_amount=0,
            discount_amount=0,
            total_amount=total,
            paid_amount=total if paid else 0,
            balance_amount=0 if paid else total,
            currency=payment.currency,
            issue_date=now,
            due_date=now + timedelta(days=settings.INVOICE_DUE_DAYS),
            paid_date=payment.paid_at,
            notes=notes or _period_note(payment),
            items=[
                InvoiceItem(
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    amount=item.amount,
                )
                for item in build_invoice_items(payment)
            ],
        )
        async with self.transaction():
            self.db.add(invoice)
        logger.info(f"Invoice {invoice.invoice_number} generated for subscription payment {payment.id}")
        return await self.get_invoice(invoice.id)

    async def get_invoice(self, invoice_id: int) -> Invoice:
        query = select(Invoice).where(Invoice.id == invoice_id)
        if self.school_id is not None:
            query = query.where(Invoice.school_id == self.school_id)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    async def list_invoices(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[InvoiceStatus] = None,
    ) -> Tuple[List[Invoice], int]:
        query = select(Invoice)
        if self.school_id is not None:
            query = query.where(Invoice.school_id == self.school_id)
        if status:
            query = query.where(Invoice.status == status)
        total = await self.count(query)
        result = await self.db.execute(
            query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def invoice_pdf(self, invoice_id: int) -> Tuple[str, bytes]:
        invoice = await self.get_invoice(invoice_id)
        return invoice.invoice_number, render_invoice_pdf(document_for_invoice(invoice))

    async def payment_pdf(self, payment_id: int) -> Tuple[str, bytes]:
        """PDF for a subscription payment, using its stored invoice when there is one"""
        payment = await self._payment(payment_id)
        invoice = await self._invoice_for_payment(payment.id)
        doc = document_for_invoice(invoice) if invoice else document_for_payment(payment)
        return doc.invoice_number, render_invoice_pdf(doc)
