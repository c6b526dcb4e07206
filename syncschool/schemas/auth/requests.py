from pydantic import EmailStr, Field, field_validator

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import STAFF_ROLES, UserRoleEnum


class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2)
    role: UserRoleEnum

    @field_validator("role")
    @classmethod
    def staff_role_only(cls, v: UserRoleEnum) -> UserRoleEnum:
        if v not in STAFF_ROLES:
            raise ValueError(f"Role must be one of {', '.join(r.value for r in STAFF_ROLES)}")
        return v
