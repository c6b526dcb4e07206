from typing import Optional

from pydantic import EmailStr, Field

from syncschool.schemas.common import APIModel


class SchoolCreate(APIModel):
    name: str = Field(..., min_length=2, max_length=255)
    slug: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    logo_url: Optional[str] = None

    # First administrator of the new school
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=6)
    admin_full_name: str = Field(..., min_length=2)


class SchoolStatusUpdate(APIModel):
    is_active: bool
