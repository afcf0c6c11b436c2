from rest_framework.permissions import BasePermission, SAFE_METHODS


class RolePermission(BasePermission):
    """
    Base permission class for role-based access control.
    Ensures user is authenticated and active.
    """
    allowed_roles = set()

    def has_permission(self, request, view):
        user = request.user

        if not user or not user.is_authenticated:
            return False

        if not user.is_active:
            return False

        # Superusers always bypass role checks
        if user.is_superuser:
            return True

        return getattr(user, "role", None) in self.allowed_roles


class IsAdminOnly(RolePermission):
    allowed_roles = {"ADMIN"}


class IsAdminOrStaff(RolePermission):
    allowed_roles = {"ADMIN", "STAFF"}


class IsInternalOrReadOnly(IsAdminOrStaff):
    """
    Franchisees may read; only internal users may write.
    """
    message = "Only internal users can modify billing records."

    def has_permission(self, request, view):
        user = request.user
        if request.method in SAFE_METHODS:
            return bool(user and user.is_authenticated and user.is_active)
        return super().has_permission(request, view)
