from .requests import (
    AcademicTermCreate,
    AcademicTermUpdate,
    AddStudentsRequest,
    ClassBulkItem,
    ClassCreate,
    ClassUpdate,
    SubjectCreate,
    SubjectUpdate,
)
from .responses import (
    AcademicTermResponse,
    BulkClassResponse,
    ClassResponse,
    SubjectResponse,
)
