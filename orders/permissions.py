# apps/orders/permissions.py
"""Permissions для orders."""

from rest_framework import permissions


class IsStaff(permissions.BasePermission):
    """Только сотрудники (платёжный модуль, поддержка)."""

    def has_permission(self, request, view):
        return (
                request.user and
                request.user.is_authenticated and
                request.user.is_staff
        )
