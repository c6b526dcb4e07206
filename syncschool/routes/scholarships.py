from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.permissions import require_finance_staff, require_staff
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.common import CountResponse
from syncschool.schemas.finance import ScholarshipCreate, ScholarshipResponse, ScholarshipUpdate
from syncschool.services.scholarship_service import ScholarshipService, to_scholarship_response

router = APIRouter(tags=["Scholarships"])


def get_scholarship_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> ScholarshipService:
    return ScholarshipService(db, school)


@router.get("", response_model=List[ScholarshipResponse])
async def list_scholarships(
    current_user: User = Depends(require_staff()),
    scholarship_service: ScholarshipService = Depends(get_scholarship_service),
):
    rows = await scholarship_service.list_scholarships()
    return [to_scholarship_response(s, count) for s, count in rows]


@router.post("", response_model=ScholarshipResponse, status_code=status.HTTP_201_CREATED)
async def create_scholarship(
    request: ScholarshipCreate,
    current_user: User = Depends(require_finance_staff()),
    scholarship_service: ScholarshipService = Depends(get_scholarship_service),
):
    return to_scholarship_response(await scholarship_service.create_scholarship(request))


@router.post("/bulk", response_model=CountResponse, status_code=status.HTTP_201_CREATED)
async def bulk_create_scholarships(
    request: List[ScholarshipCreate],
    current_user: User = Depends(require_finance_staff()),
    scholarship_service: ScholarshipService = Depends(get_scholarship_service),
):
    count = await scholarship_service.bulk_create(request)
    return CountResponse(message=f"Successfully created {count} scholarships", count=count)


@router.put("/{scholarship_id}", response_model=ScholarshipResponse)
async def update_scholarship(
    scholarship_id: int,
    request: ScholarshipUpdate,
    current_user: User = Depends(require_finance_staff()),
    scholarship_service: ScholarshipService = Depends(get_scholarship_service),
):
    return to_scholarship_response(await scholarship_service.update_scholarship(scholarship_id, request))


@router.delete("/{scholarship_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_scholarship(
    scholarship_id: int,
    current_user: User = Depends(require_finance_staff()),
    scholarship_service: ScholarshipService = Depends(get_scholarship_service),
) -> Response:
    await scholarship_service.delete_scholarship(scholarship_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
