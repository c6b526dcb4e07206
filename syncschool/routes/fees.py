from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.permissions import require_finance_staff, require_office_staff
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.finance import FeeCreate, FeeResponse, StudentFeeSummary
from syncschool.services.fee_service import FeeService

router = APIRouter(tags=["Fees"])


def get_fee_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> FeeService:
    return FeeService(db, school)


@router.post("", response_model=FeeResponse, status_code=status.HTTP_201_CREATED)
async def assign_fee(
    request: FeeCreate,
    current_user: User = Depends(require_finance_staff()),
    fee_service: FeeService = Depends(get_fee_service),
):
    return await fee_service.assign_fee(request)


@router.get("/student/{student_id}", response_model=StudentFeeSummary)
async def get_student_fees(
    student_id: int,
    current_user: User = Depends(require_office_staff()),
    fee_service: FeeService = Depends(get_fee_service),
):
    return await fee_service.student_fees(student_id)
