"""
Role based permission classes for the front-desk API.
"""
from rest_framework.permissions import BasePermission

STAFF_ROLES = {"admin", "staff", "doctor"}


def _role(user):
    if getattr(user, "is_superuser", False):
        return "admin"
    return getattr(user, "role", None)


class IsStaffRole(BasePermission):
    """Front-desk staff, doctors and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and _role(user) in STAFF_ROLES)


class IsAdminRole(BasePermission):
    """Administrators only; required for destructive overrides."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and _role(user) == "admin")
