from datetime import date
from typing import List, Optional

from pydantic import EmailStr, Field

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import Gender, StudentStatus


class StudentCreate(APIModel):
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    admission_number: str = Field(..., min_length=1, max_length=50)
    date_of_birth: date
    gender: Gender
    guardian_name: str = Field("", max_length=255)
    guardian_phone: str = Field("", max_length=30)
    guardian_email: Optional[EmailStr] = None
    address: Optional[str] = None
    class_id: int
    scholarship_id: Optional[int] = None
    parent_id: Optional[int] = None


class StudentUpdate(APIModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, min_length=2, max_length=100)
    admission_number: Optional[str] = Field(None, min_length=1, max_length=50)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    guardian_name: Optional[str] = Field(None, max_length=255)
    guardian_phone: Optional[str] = Field(None, max_length=30)
    guardian_email: Optional[EmailStr] = None
    address: Optional[str] = None
    class_id: Optional[int] = None
    scholarship_id: Optional[int] = None
    parent_id: Optional[int] = None
    status: Optional[StudentStatus] = None
    # Recorded on the movement log when the class changes
    reason: Optional[str] = None


class BulkDeleteRequest(APIModel):
    ids: List[int] = Field(..., min_length=1)
