from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.permissions import require_system_owner
from syncschool.models.user import User
from syncschool.schemas.common import Page, PageMeta
from syncschool.schemas.enums import InvoiceStatus
from syncschool.schemas.school import SchoolCreate, SchoolResponse, SchoolStatusUpdate
from syncschool.schemas.subscription import InvoiceGenerateRequest, InvoiceResponse
from syncschool.services.invoice_service import InvoiceService
from syncschool.services.school_service import SchoolService

router = APIRouter(tags=["Platform"])


def get_school_service(db: AsyncSession = Depends(get_db)) -> SchoolService:
    return SchoolService(db)


def get_invoice_service(db: AsyncSession = Depends(get_db)) -> InvoiceService:
    return InvoiceService(db)


@router.post("/schools", response_model=SchoolResponse, status_code=status.HTTP_201_CREATED)
async def create_school(
    request: SchoolCreate,
    current_user: User = Depends(require_system_owner()),
    school_service: SchoolService = Depends(get_school_service),
):
    """Create a school on a trial, together with its first administrator"""
    return await school_service.create_school(request)


@router.get("/schools", response_model=List[SchoolResponse])
async def list_schools(
    search: Optional[str] = None,
    current_user: User = Depends(require_system_owner()),
    school_service: SchoolService = Depends(get_school_service),
):
    return await school_service.list_schools(search)


@router.patch("/schools/{school_id}/status", response_model=SchoolResponse)
async def set_school_status(
    school_id: int,
    request: SchoolStatusUpdate,
    current_user: User = Depends(require_system_owner()),
    school_service: SchoolService = Depends(get_school_service),
):
    return await school_service.set_active(school_id, request.is_active)


@router.post("/invoices/generate", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def generate_invoice(
    request: InvoiceGenerateRequest,
    current_user: User = Depends(require_system_owner()),
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    return await invoice_service.generate(request.subscription_payment_id, request.notes)


@router.get("/invoices", response_model=Page[InvoiceResponse])
async def list_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    invoice_status: Optional[InvoiceStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_system_owner()),
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    invoices, total = await invoice_service.list_invoices(page, limit, invoice_status)
    return Page[InvoiceResponse](
        data=[InvoiceResponse.model_validate(i) for i in invoices],
        meta=PageMeta.build(total, page, limit),
    )


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    current_user: User = Depends(require_system_owner()),
    invoice_service: InvoiceService = Depends(get_invoice_service),
):
    return await invoice_service.get_invoice(invoice_id)


@router.get("/invoices/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: int,
    current_user: User = Depends(require_system_owner()),
    invoice_service: InvoiceService = Depends(get_invoice_service),
) -> Response:
    number, pdf = await invoice_service.invoice_pdf(invoice_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{number}.pdf"'},
    )
