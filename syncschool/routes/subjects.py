from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.permissions import require_school_admin, require_staff
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.academic import SubjectCreate, SubjectResponse, SubjectUpdate
from syncschool.services.subject_service import SubjectService

router = APIRouter(tags=["Subjects"])


def get_subject_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> SubjectService:
    return SubjectService(db, school)


@router.get("", response_model=List[SubjectResponse])
async def list_subjects(
    current_user: User = Depends(require_staff()),
    subject_service: SubjectService = Depends(get_subject_service),
):
    return await subject_service.list_subjects()


@router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(
    request: SubjectCreate,
    current_user: User = Depends(require_school_admin()),
    subject_service: SubjectService = Depends(get_subject_service),
):
    return await subject_service.create_subject(request)


@router.put("/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: int,
    request: SubjectUpdate,
    current_user: User = Depends(require_school_admin()),
    subject_service: SubjectService = Depends(get_subject_service),
):
    return await subject_service.update_subject(subject_id, request)


@router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subject(
    subject_id: int,
    current_user: User = Depends(require_school_admin()),
    subject_service: SubjectService = Depends(get_subject_service),
) -> Response:
    await subject_service.delete_subject(subject_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
