"""
Shared pytest fixtures: API client, users, JWT-authenticated clients, and a
clean cache per test.
"""
import pytest
from django.contrib.auth import get_user_model
from django.core.cache import caches
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user_model():
    return get_user_model()


@pytest.fixture
def create_user(user_model):
    def _create_user(email="test@example.com", password="testpass123"):
        return user_model.objects.create_user(
            email=email,
            username=email,
            password=password
        )
    return _create_user


@pytest.fixture
def authenticated_client(api_client, create_user):
    user = create_user()
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {str(refresh.access_token)}')
    return api_client, user


@pytest.fixture
def other_user_client(create_user):
    """A second authenticated user, for ownership checks."""
    user = create_user(email="other@example.com")
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {str(refresh.access_token)}')
    return client, user


@pytest.fixture(autouse=True)
def clear_caches():
    for cache in caches.all():
        cache.clear()
    yield
