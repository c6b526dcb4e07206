from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.permissions import require_school_admin, require_staff
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.academic import AcademicTermCreate, AcademicTermResponse, AcademicTermUpdate
from syncschool.services.academic_term_service import AcademicTermService

router = APIRouter(tags=["Academic Terms"])


def get_term_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> AcademicTermService:
    return AcademicTermService(db, school)


@router.get("", response_model=List[AcademicTermResponse])
async def list_terms(
    current_user: User = Depends(require_staff()),
    term_service: AcademicTermService = Depends(get_term_service),
):
    return await term_service.list_terms()


@router.get("/current", response_model=AcademicTermResponse)
async def get_current_term(
    current_user: User = Depends(require_staff()),
    term_service: AcademicTermService = Depends(get_term_service),
):
    return await term_service.get_current_term()


@router.post("", response_model=AcademicTermResponse, status_code=status.HTTP_201_CREATED)
async def create_term(
    request: AcademicTermCreate,
    current_user: User = Depends(require_school_admin()),
    term_service: AcademicTermService = Depends(get_term_service),
):
    return await term_service.create_term(request)


@router.put("/{term_id}", response_model=AcademicTermResponse)
async def update_term(
    term_id: int,
    request: AcademicTermUpdate,
    current_user: User = Depends(require_school_admin()),
    term_service: AcademicTermService = Depends(get_term_service),
):
    return await term_service.update_term(term_id, request)


@router.patch("/{term_id}/activate", response_model=AcademicTermResponse)
async def activate_term(
    term_id: int,
    current_user: User = Depends(require_school_admin()),
    term_service: AcademicTermService = Depends(get_term_service),
):
    return await term_service.activate_term(term_id)
