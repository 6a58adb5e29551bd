"""
Views for tracked domain management.
"""
from rest_framework import viewsets
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated

from rankwell_backend.exceptions import InvalidIdentifier, parse_uuid

from .models import Domain
from .permissions import IsDomainOwner
from .serializers import DomainSerializer


class DomainViewSet(viewsets.ModelViewSet):
    """
    ViewSet for managing tracked domains.

    list: GET /api/v1/domains/ - List domains for current user
    create: POST /api/v1/domains/ - Track a new domain
    retrieve: GET /api/v1/domains/{id}/ - Get domain details
    update: PUT/PATCH /api/v1/domains/{id}/ - Update domain
    destroy: DELETE /api/v1/domains/{id}/ - Stop tracking a domain
    """
    serializer_class = DomainSerializer
    permission_classes = [IsAuthenticated, IsDomainOwner]

    def get_queryset(self):
        """Return only domains owned by the current user."""
        queryset = Domain.objects.filter(user=self.request.user)
        is_active = self.request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in ('1', 'true', 'yes'))
        return queryset

    def get_object(self):
        # Look up across all owners so another user's domain is a 403, not a 404
        pk = parse_uuid(self.kwargs.get('pk'))
        if pk is None:
            raise InvalidIdentifier('domain id')
        domain = Domain.objects.filter(pk=pk).first()
        if domain is None:
            raise NotFound('Domain not found.')
        self.check_object_permissions(self.request, domain)
        return domain

    def perform_create(self, serializer):
        """Set the user when creating a domain."""
        serializer.save(user=self.request.user)
