from typing import Iterable, Set

from fastapi import Depends

from syncschool.core.dependencies import get_current_active_user
from syncschool.core.errors import PermissionDenied
from syncschool.core.logging import logger
from syncschool.models.user import User
from syncschool.schemas.enums import UserRoleEnum


class RoleHierarchy:
    """Define role hierarchy relationships"""
    SCHOOL_ROLES = {
        UserRoleEnum.BURSAR,
        UserRoleEnum.TEACHER,
        UserRoleEnum.SECRETARY,
        UserRoleEnum.PARENT,
    }
    HIERARCHY = {
        UserRoleEnum.SYSTEM_OWNER: {UserRoleEnum.SUPER_ADMIN} | SCHOOL_ROLES,
        UserRoleEnum.SUPER_ADMIN: SCHOOL_ROLES,
    }

    @classmethod
    def get_subordinate_roles(cls, role: UserRoleEnum) -> Set[UserRoleEnum]:
        return cls.HIERARCHY.get(role, set())

    @classmethod
    def has_permission(cls, user_role: UserRoleEnum, required_role: UserRoleEnum) -> bool:
        """Check if user_role has permission over required_role"""
        if user_role == required_role:
            return True
        return required_role in cls.get_subordinate_roles(user_role)


class RoleChecker:
    """
    Dependency that admits users holding one of the allowed roles,
    or a role above one of them in the hierarchy.
    """

    def __init__(self, allowed_roles: Iterable[UserRoleEnum], use_hierarchy: bool = True):
        self.allowed_roles = set(allowed_roles)
        self.use_hierarchy = use_hierarchy

    async def __call__(self, current_user: User = Depends(get_current_active_user)) -> User:
        if not self._check_permission(current_user):
            logger.warning(
                f"Permission denied: User {current_user.id} with role {current_user.role} "
                f"attempted to access resource requiring roles {sorted(r.value for r in self.allowed_roles)}"
            )
            raise PermissionDenied("Operation not permitted")
        return current_user

    def _check_permission(self, user: User) -> bool:
        user_role = UserRoleEnum(user.role)
        if not self.use_hierarchy:
            return user_role in self.allowed_roles
        return any(
            RoleHierarchy.has_permission(user_role, required_role)
            for required_role in self.allowed_roles
        )


# Factory functions for common role checks
def require_system_owner():
    return RoleChecker([UserRoleEnum.SYSTEM_OWNER])


def require_school_admin():
    return RoleChecker([UserRoleEnum.SUPER_ADMIN])


def require_finance_staff():
    return RoleChecker([UserRoleEnum.SUPER_ADMIN, UserRoleEnum.BURSAR])


def require_academic_staff():
    return RoleChecker([UserRoleEnum.SUPER_ADMIN, UserRoleEnum.TEACHER, UserRoleEnum.SECRETARY])


def require_office_staff():
    return RoleChecker([UserRoleEnum.SUPER_ADMIN, UserRoleEnum.SECRETARY, UserRoleEnum.BURSAR])


def require_staff():
    return RoleChecker([
        UserRoleEnum.SUPER_ADMIN,
        UserRoleEnum.BURSAR,
        UserRoleEnum.TEACHER,
        UserRoleEnum.SECRETARY,
    ])


def require_parent():
    return RoleChecker([UserRoleEnum.PARENT], use_hierarchy=False)
