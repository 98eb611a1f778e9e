from collections.abc import Iterable

from rest_framework.permissions import BasePermission

ROLE_ADMIN = "Admin"
ROLE_MANAGER = "Manager"
ROLE_EMPLOYEE = "Employee"


def user_in_groups(user, names: Iterable[str]) -> bool:
    groups = getattr(user, "groups", None)
    names_list = list(names)
    if not groups or not names_list:
        return False
    return groups.filter(name__in=names_list).exists()


def is_staff_or_role(user, roles: Iterable[str]) -> bool:
    return bool(getattr(user, "is_staff", False)) or user_in_groups(user, roles)


def is_admin(user) -> bool:
    return is_staff_or_role(user, [ROLE_ADMIN])


class IsManagerOrAdmin(BasePermission):
    """Allow access only to staff or users in Admin/Manager groups."""

    def has_permission(self, request, view):
        u = getattr(request, "user", None)
        if not (u and getattr(u, "is_authenticated", False)):
            return False
        return is_staff_or_role(u, [ROLE_ADMIN, ROLE_MANAGER])


class IsAdmin(BasePermission):
    """Allow access only to staff or users in the Admin group."""

    def has_permission(self, request, view):
        u = getattr(request, "user", None)
        if not (u and getattr(u, "is_authenticated", False)):
            return False
        return is_admin(u)
