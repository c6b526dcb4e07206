from .requests import (
    FeeCreate,
    PaymentCreate,
    PaymentVoidRequest,
    ScholarshipCreate,
    ScholarshipUpdate,
)
from .responses import (
    AdminDashboard,
    DuplicateCheckResponse,
    FeeResponse,
    FinanceStatsResponse,
    PaymentResponse,
    RecentPayment,
    ScholarshipResponse,
    StudentFeeSummary,
    TeacherClassStat,
    TeacherDashboard,
)
