from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.permissions import require_academic_staff, require_school_admin, require_staff
from syncschool.core.subscription import (
    enforce_bulk_limit,
    require_active_subscription,
    require_resource_limit,
)
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.academic import (
    AddStudentsRequest,
    BulkClassResponse,
    ClassBulkItem,
    ClassCreate,
    ClassResponse,
    ClassUpdate,
)
from syncschool.schemas.common import CountResponse
from syncschool.schemas.enums import LimitedResource, UserRoleEnum
from syncschool.schemas.student import StudentResponse
from syncschool.services.class_service import ClassService, to_class_response

router = APIRouter(tags=["Classes"])


def get_class_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> ClassService:
    return ClassService(db, school)


@router.get("", response_model=List[ClassResponse])
async def list_classes(
    teacher_id: Optional[int] = None,
    current_user: User = Depends(require_staff()),
    class_service: ClassService = Depends(get_class_service),
):
    # Teachers only see the classes they are in charge of
    if current_user.role == UserRoleEnum.TEACHER:
        teacher_id = current_user.id
    classes = await class_service.list_classes(teacher_id=teacher_id)
    return [to_class_response(c, count) for c, count in classes]


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(require_active_subscription),
        Depends(require_resource_limit(LimitedResource.CLASSES)),
    ],
)
async def create_class(
    request: ClassCreate,
    current_user: User = Depends(require_school_admin()),
    class_service: ClassService = Depends(get_class_service),
):
    return to_class_response(await class_service.create_class(request))


@router.post(
    "/bulk",
    response_model=BulkClassResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_active_subscription)],
)
async def bulk_create_classes(
    request: List[ClassBulkItem],
    current_user: User = Depends(require_school_admin()),
    class_service: ClassService = Depends(get_class_service),
):
    await enforce_bulk_limit(
        class_service.db, current_user, class_service.school, LimitedResource.CLASSES, len(request)
    )
    created, skipped = await class_service.bulk_create(request)
    return BulkClassResponse(
        message=f"Successfully created {created} classes",
        count=created,
        skipped=skipped,
    )


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class(
    class_id: int,
    current_user: User = Depends(require_staff()),
    class_service: ClassService = Depends(get_class_service),
):
    school_class, count = await class_service.get_class_with_count(class_id)
    return to_class_response(school_class, count)


@router.put("/{class_id}", response_model=ClassResponse)
async def update_class(
    class_id: int,
    request: ClassUpdate,
    current_user: User = Depends(require_school_admin()),
    class_service: ClassService = Depends(get_class_service),
):
    await class_service.update_class(class_id, request)
    school_class, count = await class_service.get_class_with_count(class_id)
    return to_class_response(school_class, count)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    class_id: int,
    current_user: User = Depends(require_school_admin()),
    class_service: ClassService = Depends(get_class_service),
) -> Response:
    await class_service.delete_class(class_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{class_id}/students", response_model=List[StudentResponse])
async def get_class_students(
    class_id: int,
    current_user: User = Depends(require_staff()),
    class_service: ClassService = Depends(get_class_service),
):
    return await class_service.get_class_students(class_id)


@router.post("/{class_id}/students", response_model=CountResponse)
async def add_students_to_class(
    class_id: int,
    request: AddStudentsRequest,
    current_user: User = Depends(require_academic_staff()),
    class_service: ClassService = Depends(get_class_service),
):
    count = await class_service.add_students(class_id, request.student_ids, moved_by=current_user)
    return CountResponse(message=f"{count} students added to class", count=count)
