"""Accounts app views.

Contains:
- Registration for new workshops
- The authenticated workshop's profile
- Client management (scoped to the workshop)
"""

from rest_framework import filters, generics, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated

from .models import Client
from .serializers import ClientSerializer, RegisterSerializer, UserProfileSerializer


class RegisterView(generics.CreateAPIView):
    """Open registration endpoint for workshop owners."""

    serializer_class = RegisterSerializer
    permission_classes = [AllowAny]
    authentication_classes = []


class UserProfileView(generics.RetrieveUpdateAPIView):
    """Read or update the authenticated workshop's profile."""

    serializer_class = UserProfileSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user


class ClientViewSet(viewsets.ModelViewSet):
    """Client CRUD, scoped to the authenticated workshop."""

    serializer_class = ClientSerializer
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name', 'phone', 'email']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']
    # Clients own financial records; they are never deleted through the API.
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']

    def get_queryset(self):
        return Client.objects.filter(tailor=self.request.user)

    def perform_create(self, serializer):
        serializer.save(tailor=self.request.user)
