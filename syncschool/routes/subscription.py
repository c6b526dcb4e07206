from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_optional_tenant, get_tenant
from syncschool.core.permissions import require_school_admin, require_staff
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.common import Page, PageMeta
from syncschool.schemas.subscription import (
    ConfirmPaymentRequest,
    PlanResponse,
    SubscriptionPaymentResponse,
    SubscriptionStatusResponse,
    UpgradeRequest,
    UpgradeResponse,
)
from syncschool.services.invoice_service import InvoiceService
from syncschool.services.subscription_service import (
    SubscriptionService,
    to_subscription_payment_response,
)

router = APIRouter(tags=["Subscription"])


def get_subscription_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> SubscriptionService:
    return SubscriptionService(db, school)


@router.get("/plans", response_model=List[PlanResponse])
async def list_plans(db: AsyncSession = Depends(get_db)):
    return await SubscriptionService(db).list_plans()


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    current_user: User = Depends(require_staff()),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    return await subscription_service.get_status()


@router.get("/payments", response_model=Page[SubscriptionPaymentResponse])
async def get_payment_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_school_admin()),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    payments, total = await subscription_service.payment_history(page, limit)
    return Page[SubscriptionPaymentResponse](
        data=[to_subscription_payment_response(p) for p in payments],
        meta=PageMeta.build(total, page, limit),
    )


@router.post("/upgrade", response_model=UpgradeResponse)
async def initiate_upgrade(
    request: UpgradeRequest,
    current_user: User = Depends(require_school_admin()),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """Quote the plan for the chosen cycle and open a pending payment for it"""
    payment, plan = await subscription_service.initiate_upgrade(request)
    return UpgradeResponse(
        payment_id=payment.id,
        plan_name=plan.name,
        tier=plan.tier,
        billing_cycle=payment.billing_cycle,
        base_amount=payment.base_amount,
        overage_students=payment.overage_students,
        overage_amount=payment.overage_amount,
        amount=payment.total_amount,
        currency=payment.currency,
        period_start=payment.period_start,
        period_end=payment.period_end,
        message="Please complete payment via Mobile Money or Bank Transfer",
    )


@router.post("/payments/{payment_id}/confirm", response_model=SubscriptionPaymentResponse)
async def confirm_payment(
    payment_id: int,
    request: Optional[ConfirmPaymentRequest] = None,
    current_user: User = Depends(require_school_admin()),
    school: Optional[School] = Depends(get_optional_tenant),
    db: AsyncSession = Depends(get_db),
):
    # Without a tenant header the platform owner can confirm any school's payment
    subscription_service = SubscriptionService(db, school)
    external_ref = request.external_ref if request else None
    payment = await subscription_service.confirm_payment(payment_id, external_ref)
    return to_subscription_payment_response(payment)


@router.get("/payments/{payment_id}/invoice.pdf")
async def download_payment_invoice(
    payment_id: int,
    current_user: User = Depends(require_school_admin()),
    school: School = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
) -> Response:
    number, pdf = await InvoiceService(db, school).payment_pdf(payment_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{number}.pdf"'},
    )
