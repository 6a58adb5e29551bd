"""
Custom permissions for domains app.
"""
from rest_framework import permissions


class IsDomainOwner(permissions.BasePermission):
    """
    Permission to check if user owns the domain.
    """
    def has_object_permission(self, request, view, obj):
        return obj.user_id == request.user.id
