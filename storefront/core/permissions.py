from rest_framework.permissions import BasePermission

from .models import User


class HasRole(BasePermission):
    """Authenticated user with one of `allowed_roles`. ADMIN passes every check."""
    allowed_roles = ()

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.role == User.ROLE_ADMIN:
            return True
        return user.role in self.allowed_roles


class IsAdminRole(HasRole):
    allowed_roles = (User.ROLE_ADMIN,)


class IsGruzchik(HasRole):
    allowed_roles = (User.ROLE_GRUZCHIK,)
