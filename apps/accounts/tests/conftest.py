import pytest
from rest_framework.test import APIClient
from apps.accounts.models import User, Role


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return a test user."""
    return User.objects.create_user(
        email='testuser@example.com',
        password='TestPass123!',
        username='testuser',
    )


@pytest.fixture
def admin_user(db):
    """Create and return a user with the Admin role."""
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        username='admin',
        role=Role.ADMIN,
    )
