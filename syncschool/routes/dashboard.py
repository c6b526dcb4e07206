from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from syncschool.core.database import get_db
from syncschool.core.dependencies import get_tenant
from syncschool.core.permissions import require_staff
from syncschool.models.school import School
from syncschool.models.user import User
from syncschool.schemas.finance import AdminDashboard, TeacherDashboard
from syncschool.services.dashboard_service import DashboardService

router = APIRouter(tags=["Dashboard"])


@router.get("/stats", response_model=Union[TeacherDashboard, AdminDashboard])
async def get_dashboard_stats(
    current_user: User = Depends(require_staff()),
    school: School = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    """Teachers get their own classes; everyone else gets the school-wide view"""
    return await DashboardService(db, school).stats_for(current_user)
