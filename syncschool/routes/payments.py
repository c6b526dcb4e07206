from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.permissions import require_finance_staff, require_office_staff
from syncschool.core.subscription import require_feature
from syncschool.models.finance import Payment
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.common import Page, PageMeta
from syncschool.schemas.enums import PaymentStatus
from syncschool.schemas.finance import (
    DuplicateCheckResponse,
    FinanceStatsResponse,
    PaymentCreate,
    PaymentResponse,
    PaymentVoidRequest,
)
from syncschool.services.email_service import EmailService
from syncschool.services.payment_service import PaymentService, to_payment_response
from syncschool.services.subscription_service import Features

router = APIRouter(tags=["Payments"])


def get_payment_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> PaymentService:
    return PaymentService(db, school)


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def queue_receipt(
    background_tasks: BackgroundTasks,
    email_service: EmailService,
    school: School,
    payment: Payment,
) -> bool:
    student = payment.student
    if not email_service.enabled or not student.guardian_email:
        return False
    background_tasks.add_task(
        email_service.send_payment_receipt,
        student.guardian_email,
        school.name,
        student.full_name,
        payment.transaction_id,
        float(payment.amount),
        payment.method.value,
        payment.payment_date.strftime("%d %b %Y %H:%M"),
    )
    return True


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_feature(Features.FEE_MANAGEMENT))],
)
async def create_payment(
    request: PaymentCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_finance_staff()),
    payment_service: PaymentService = Depends(get_payment_service),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Record a payment. A matching payment for the same student and amount
    within the last few minutes returns 409 unless forceCreate is set.
    """
    payment = await payment_service.create_payment(request, recorded_by=current_user)
    queue_receipt(background_tasks, email_service, payment_service.school, payment)
    return to_payment_response(payment)


@router.get("", response_model=Page[PaymentResponse])
async def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    search: Optional[str] = None,
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_office_staff()),
    payment_service: PaymentService = Depends(get_payment_service),
):
    payments, total = await payment_service.list_payments(page, limit, search, payment_status)
    return Page[PaymentResponse](
        data=[to_payment_response(p) for p in payments],
        meta=PageMeta.build(total, page, limit),
    )


@router.get("/stats", response_model=FinanceStatsResponse)
async def finance_stats(
    current_user: User = Depends(require_finance_staff()),
    payment_service: PaymentService = Depends(get_payment_service),
):
    return await payment_service.finance_stats()


@router.get("/check-duplicate", response_model=DuplicateCheckResponse)
async def check_duplicate(
    student_id: int = Query(..., alias="studentId"),
    amount: float = Query(..., gt=0),
    current_user: User = Depends(require_finance_staff()),
    payment_service: PaymentService = Depends(get_payment_service),
):
    recent = await payment_service.check_duplicate(student_id, amount)
    return DuplicateCheckResponse(
        has_duplicate_risk=bool(recent),
        recent_payments=[to_payment_response(p) for p in recent],
    )


@router.get("/student/{student_id}", response_model=List[PaymentResponse])
async def get_student_payments(
    student_id: int,
    current_user: User = Depends(require_office_staff()),
    payment_service: PaymentService = Depends(get_payment_service),
):
    return [to_payment_response(p) for p in await payment_service.student_payments(student_id)]


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    current_user: User = Depends(require_office_staff()),
    payment_service: PaymentService = Depends(get_payment_service),
):
    return to_payment_response(await payment_service.get_payment(payment_id))


@router.post("/{payment_id}/void", response_model=PaymentResponse)
async def void_payment(
    payment_id: int,
    request: PaymentVoidRequest,
    current_user: User = Depends(require_finance_staff()),
    payment_service: PaymentService = Depends(get_payment_service),
):
    payment = await payment_service.void_payment(payment_id, request.reason, voided_by=current_user)
    return to_payment_response(payment)
