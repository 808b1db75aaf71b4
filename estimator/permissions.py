"""Role-based access control.

Every role maps to a fixed set of permission tokens. The table is built once
at import time and never modified, so the same role always yields the same
set. Authorization questions are answered against an explicit AuthSession
rather than any process-wide "current user".
"""
import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from estimator.errors import PermissionDenied
from estimator.models.user import User, UserRole


class Permission(str, enum.Enum):
    """Capability tokens, one per category of action."""
    VIEW_CUSTOMERS = "View Customers"
    EDIT_CUSTOMERS = "Edit Customers"
    VIEW_PROJECTS = "View Projects"
    EDIT_PROJECTS = "Edit Projects"
    VIEW_QUOTATIONS = "View Quotations"
    EDIT_QUOTATIONS = "Edit Quotations"
    VIEW_REPORTS = "View Reports"
    VIEW_MATERIALS = "View Materials"
    EDIT_MATERIALS = "Edit Materials"
    BULK_UPLOAD = "Bulk Upload"
    USER_MANAGEMENT = "User Management"


ROLE_PERMISSIONS: Mapping[UserRole, FrozenSet[Permission]] = MappingProxyType({
    UserRole.ADMIN: frozenset(Permission),
    UserRole.MANAGER: frozenset({
        Permission.VIEW_CUSTOMERS,
        Permission.EDIT_CUSTOMERS,
        Permission.VIEW_PROJECTS,
        Permission.EDIT_PROJECTS,
        Permission.VIEW_QUOTATIONS,
        Permission.EDIT_QUOTATIONS,
        Permission.VIEW_REPORTS,
        Permission.VIEW_MATERIALS,
        Permission.EDIT_MATERIALS,
        Permission.BULK_UPLOAD,
    }),
    UserRole.ESTIMATOR: frozenset({
        Permission.VIEW_CUSTOMERS,
        Permission.VIEW_PROJECTS,
        Permission.EDIT_PROJECTS,
        Permission.VIEW_QUOTATIONS,
        Permission.EDIT_QUOTATIONS,
        Permission.VIEW_REPORTS,
        Permission.VIEW_MATERIALS,
    }),
    UserRole.VIEWER: frozenset({
        Permission.VIEW_CUSTOMERS,
        Permission.VIEW_PROJECTS,
        Permission.VIEW_QUOTATIONS,
        Permission.VIEW_REPORTS,
        Permission.VIEW_MATERIALS,
    }),
})


def permissions_of(role: UserRole) -> FrozenSet[Permission]:
    """Return the permission set granted to a role."""
    return ROLE_PERMISSIONS[UserRole(role)]


@dataclass(frozen=True)
class AuthSession:
    """Authorization context passed to every guarded operation.
    
    A session without a user is anonymous and holds no permissions.
    """
    user: Optional[User] = None
    session_id: Optional[str] = None
    
    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
    
    @property
    def permissions(self) -> FrozenSet[Permission]:
        if self.user is None:
            return frozenset()
        return permissions_of(self.user.role)


ANONYMOUS = AuthSession()


def has_permission(session: AuthSession, permission: Permission) -> bool:
    """True when the session has an authenticated user whose role grants permission."""
    if session is None or session.user is None:
        return False
    return permission in permissions_of(session.user.role)


def require(session: AuthSession, permission: Permission) -> None:
    """Raise PermissionDenied unless the session holds the permission."""
    if not has_permission(session, permission):
        raise PermissionDenied(permission.value)
