"""Custom DRF permissions shared by the workshop apps."""

from rest_framework import permissions


class IsWorkshopOwner(permissions.BasePermission):
    """Object-level guard: only the owning tailor may touch a record.

    Querysets are already scoped to ``request.user``; this keeps custom
    actions honest when they look objects up another way.
    """

    def has_object_permission(self, request, view, obj):
        return getattr(obj, 'tailor_id', None) == request.user.id
