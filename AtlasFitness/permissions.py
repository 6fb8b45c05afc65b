from rest_framework.permissions import BasePermission, SAFE_METHODS

from Administration.models import StaffUser


class IsAdminRole(BasePermission):
    message = "You do not have permission to perform this action"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'role', None) == StaffUser.ROLE_ADMIN)


class IsStaffOrAdmin(BasePermission):
    message = "You do not have permission to perform this action"

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user and user.is_authenticated
            and getattr(user, 'role', None) in (StaffUser.ROLE_ADMIN, StaffUser.ROLE_STAFF)
        )


class ReadAnyWriteStaff(BasePermission):
    """Reads for any authenticated user, create/update for staff, delete for admins."""
    message = "You do not have permission to perform this action"

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if request.method in SAFE_METHODS:
            return True
        role = getattr(user, 'role', None)
        if request.method == 'DELETE':
            return role == StaffUser.ROLE_ADMIN
        return role in (StaffUser.ROLE_ADMIN, StaffUser.ROLE_STAFF)


class ReadAnyWriteAdmin(BasePermission):
    message = "You do not have permission to perform this action"

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if request.method in SAFE_METHODS:
            return True
        return getattr(user, 'role', None) == StaffUser.ROLE_ADMIN
