"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission

from core.authentication import CRON_AUTH

ADMIN_ROLES = {"admin", "super_admin"}


def is_admin(user) -> bool:
    return bool(user and user.is_authenticated and getattr(user, "role", None) in ADMIN_ROLES)


class IsAdminRole(BasePermission):
    """Allow access only to users with an administrative role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return is_admin(getattr(request, "user", None))


class IsCronCaller(BasePermission):
    """Scheduler calls authenticated by ``CronSecretAuthentication``; admins may trigger manually."""
    def has_permission(self, request, view) -> bool:
        return request.auth == CRON_AUTH or is_admin(getattr(request, "user", None))

