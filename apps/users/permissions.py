from rest_framework.permissions import BasePermission

from .models import Role, UserStatus


class IsActiveUser(BasePermission):
    message = "Account is suspended."

    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.status == UserStatus.ACTIVE
        )


class IsAdminRole(BasePermission):
    message = "Only admins can do this."

    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.role == Role.ADMIN
        )
