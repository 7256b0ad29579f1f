"""
Role-Based Permission Classes
"""

from typing import List
from rest_framework import permissions
from rest_framework.request import Request
from rest_framework.views import APIView


class Roles:
    """Role constants issued by the user directory."""

    ADMIN = 'admin'
    TRAINER = 'trainer'
    TRAINEE = 'trainee'

    STAFF = (ADMIN, TRAINER)


class BasePermission(permissions.BasePermission):
    """Base permission class with utility methods"""

    def get_user_roles(self, request: Request) -> List[str]:
        """Get roles from user object or JWT payload"""
        if hasattr(request.user, 'roles'):
            return request.user.roles
        if hasattr(request, 'auth') and isinstance(request.auth, dict):
            return request.auth.get('roles', [])
        return []


class HasRole(BasePermission):
    """Check if user has one of the required roles"""

    required_roles: List[str] = []

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not request.user or not request.user.is_authenticated:
            return False

        return bool(set(self.required_roles) & set(self.get_user_roles(request)))


class IsAdminOrTrainer(HasRole):
    required_roles = list(Roles.STAFF)


class IsStaffOrReadOnly(BasePermission):
    """Anyone authenticated may read; only admins and trainers may write."""

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not request.user or not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(set(Roles.STAFF) & set(self.get_user_roles(request)))


def is_staff(user) -> bool:
    """True for admins and trainers."""
    return bool(set(Roles.STAFF) & set(getattr(user, 'roles', []) or []))
