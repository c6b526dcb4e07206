from .requests import BulkDeleteRequest, StudentCreate, StudentUpdate
from .responses import (
    ImportRowError,
    StudentDetailResponse,
    StudentImportResponse,
    StudentResponse,
)
