from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.permissions import (
    require_office_staff,
    require_parent,
    require_school_admin,
    require_staff,
)
from syncschool.core.subscription import (
    enforce_bulk_limit,
    remaining_capacity,
    require_active_subscription,
    require_resource_limit,
)
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.common import CountResponse
from syncschool.schemas.enums import LimitedResource, StudentStatus
from syncschool.schemas.student import (
    BulkDeleteRequest,
    StudentCreate,
    StudentDetailResponse,
    StudentImportResponse,
    StudentResponse,
    StudentUpdate,
)
from syncschool.services.student_service import StudentService

router = APIRouter(tags=["Students"])


def get_student_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> StudentService:
    return StudentService(db, school)


@router.get("", response_model=List[StudentResponse])
async def list_students(
    search: Optional[str] = None,
    class_id: Optional[int] = Query(None, alias="classId"),
    student_status: Optional[StudentStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_staff()),
    student_service: StudentService = Depends(get_student_service),
):
    return await student_service.list_students(search=search, class_id=class_id, status=student_status)


@router.get("/my-children", response_model=List[StudentResponse])
async def my_children(
    current_user: User = Depends(require_parent()),
    student_service: StudentService = Depends(get_student_service),
):
    return await student_service.my_children(current_user)


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(require_active_subscription),
        Depends(require_resource_limit(LimitedResource.STUDENTS)),
    ],
)
async def create_student(
    request: StudentCreate,
    current_user: User = Depends(require_office_staff()),
    student_service: StudentService = Depends(get_student_service),
):
    return await student_service.create_student(request)


@router.post(
    "/bulk",
    response_model=CountResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_active_subscription)],
)
async def bulk_create_students(
    request: List[StudentCreate],
    current_user: User = Depends(require_office_staff()),
    student_service: StudentService = Depends(get_student_service),
):
    # Only rows that would actually be created count against the plan
    fresh = await student_service.new_rows(request)
    await enforce_bulk_limit(
        student_service.db, current_user, student_service.school, LimitedResource.STUDENTS, len(fresh)
    )
    created, skipped = await student_service.bulk_create(request)
    return CountResponse(
        message=f"Successfully imported {created} students ({skipped} skipped)",
        count=created,
    )


@router.post(
    "/import",
    response_model=StudentImportResponse,
    dependencies=[Depends(require_active_subscription)],
)
async def import_students(
    file: UploadFile = File(...),
    current_user: User = Depends(require_office_staff()),
    student_service: StudentService = Depends(get_student_service),
):
    """Upload a CSV or Excel register with NAME and GRADE columns"""
    content = await file.read()
    capacity = await remaining_capacity(
        student_service.db, current_user, student_service.school, LimitedResource.STUDENTS
    )
    return await student_service.import_file(file.filename, content, capacity=capacity)


@router.post("/bulk-delete", response_model=CountResponse)
async def bulk_delete_students(
    request: BulkDeleteRequest,
    current_user: User = Depends(require_school_admin()),
    student_service: StudentService = Depends(get_student_service),
):
    count = await student_service.bulk_delete(request.ids)
    return CountResponse(message=f"{count} students deleted", count=count)


@router.get("/{student_id}", response_model=StudentDetailResponse)
async def get_student(
    student_id: int,
    current_user: User = Depends(require_staff()),
    student_service: StudentService = Depends(get_student_service),
):
    return await student_service.get_student_detail(student_id)


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: int,
    request: StudentUpdate,
    current_user: User = Depends(require_office_staff()),
    student_service: StudentService = Depends(get_student_service),
):
    return await student_service.update_student(student_id, request, changed_by=current_user)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: int,
    current_user: User = Depends(require_school_admin()),
    student_service: StudentService = Depends(get_student_service),
) -> Response:
    await student_service.delete_student(student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
