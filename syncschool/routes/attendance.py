from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.errors import BadRequestError
from syncschool.core.permissions import require_academic_staff, require_staff
from syncschool.core.subscription import require_feature
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.attendance import AttendanceCreate, AttendanceResponse
from syncschool.schemas.common import CountResponse
from syncschool.services.attendance_service import AttendanceService
from syncschool.services.subscription_service import Features

router = APIRouter(tags=["Attendance"])


def get_attendance_service(
    db: AsyncSession = Depends(get_db),
    school: School = Depends(get_tenant),
) -> AttendanceService:
    return AttendanceService(db, school)


@router.post(
    "",
    response_model=CountResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_feature(Features.ATTENDANCE))],
)
async def record_attendance(
    request: AttendanceCreate,
    current_user: User = Depends(require_academic_staff()),
    attendance_service: AttendanceService = Depends(get_attendance_service),
):
    count = await attendance_service.record_attendance(request, recorded_by=current_user)
    return CountResponse(message="Attendance recorded successfully", count=count)


@router.get("", response_model=List[AttendanceResponse])
async def get_class_attendance(
    class_id: Optional[int] = Query(None, alias="classId"),
    on_date: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(require_staff()),
    attendance_service: AttendanceService = Depends(get_attendance_service),
):
    if class_id is None:
        raise BadRequestError("classId is required")
    return await attendance_service.get_class_attendance(class_id, on_date or date.today())


@router.get("/student/{student_id}", response_model=List[AttendanceResponse])
async def get_student_attendance(
    student_id: int,
    current_user: User = Depends(require_staff()),
    attendance_service: AttendanceService = Depends(get_attendance_service),
):
    return await attendance_service.get_student_attendance(student_id)
