# users/permissions.py

from rest_framework.permissions import BasePermission

from users.models import User


# ---------------- BASE ROLE PERMISSION ----------------
class HasRole(BasePermission):
    """
    Base permission to check user role safely.
    """

    allowed_roles = set()

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and (user.is_superuser or user.role in self.allowed_roles)
        )


# ---------------- ROLE PERMISSIONS ----------------
class IsAdmin(HasRole):
    allowed_roles = {User.ROLE_ADMIN}


class IsSalesStaff(HasRole):
    """
    Anyone allowed to ring up sales and service lines.
    """

    allowed_roles = {
        User.ROLE_ADMIN,
        User.ROLE_CASHIER,
        User.ROLE_GROOMER,
        User.ROLE_VETERINARIAN,
    }
