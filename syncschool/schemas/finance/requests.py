from typing import Optional

from pydantic import Field

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import PaymentMethod


class ScholarshipCreate(APIModel):
    name: str = Field(..., min_length=2, max_length=100)
    percentage: float = Field(..., ge=0, le=100)
    description: Optional[str] = None


class ScholarshipUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    percentage: Optional[float] = Field(None, ge=0, le=100)
    description: Optional[str] = None


class FeeCreate(APIModel):
    student_id: int
    description: str = Field(..., min_length=2, max_length=255)
    amount_due: float = Field(..., gt=0)
    academic_term_id: Optional[int] = None


class PaymentCreate(APIModel):
    student_id: int
    amount: float = Field(..., gt=0)
    method: PaymentMethod
    notes: Optional[str] = None
    force_create: bool = False


class PaymentVoidRequest(APIModel):
    reason: str = Field(..., min_length=5)
