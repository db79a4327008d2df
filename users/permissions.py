from rest_framework import permissions
from users.models import User


class IsAdmin(permissions.BasePermission):
    """Only Admin users have access"""

    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated and request.user.is_admin


class IsStoreStaffOrAdmin(permissions.BasePermission):
    """Store Staff and Admin have access"""

    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            request.user.role in [User.Role.ADMIN, User.Role.STORE_STAFF]
        )


class CanHandleStoreOrders(permissions.BasePermission):
    """Staff may only act on orders of the store they are assigned to"""

    def has_object_permission(self, request, view, obj):
        return request.user.can_handle_store(obj.store)


class IsOrderOwnerOrStaff(permissions.BasePermission):
    """Customers see their own orders, staff see their store's orders"""

    def has_object_permission(self, request, view, obj):
        if obj.user_id == request.user.pk:
            return True
        return request.user.can_handle_store(obj.store)
