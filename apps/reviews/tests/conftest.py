import pytest
from datetime import date
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, Role
from apps.movies.models import Movie
from apps.reviews.services import create_review, delete_review


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def review_user(db):
    """Create and return a test user for reviews."""
    return User.objects.create_user(
        email='reviewer@example.com',
        password='TestPass123!',
        username='reviewer',
    )


@pytest.fixture
def review_other_user(db):
    """Create and return another test user for reviews."""
    return User.objects.create_user(
        email='review_other@example.com',
        password='TestPass123!',
        username='review_other',
    )


@pytest.fixture
def review_admin(db):
    """Create and return a user with the Admin role."""
    return User.objects.create_user(
        email='review_admin@example.com',
        password='TestPass123!',
        username='review_admin',
        role=Role.ADMIN,
    )


@pytest.fixture
def review_auth_client(review_user):
    """Return API client authenticated as review user."""
    return _client_for(review_user)


@pytest.fixture
def review_other_client(review_other_user):
    """Return API client authenticated as other user."""
    return _client_for(review_other_user)


@pytest.fixture
def review_admin_client(review_admin):
    """Return API client authenticated as admin."""
    return _client_for(review_admin)


@pytest.fixture
def review_movie(db):
    """Create and return a test movie for reviews."""
    return Movie.objects.create(
        title='The Grand Budapest Hotel',
        description='A concierge and his lobby boy.',
        release_date=date(2014, 3, 7),
        duration=99,
        genre='Comedy',
        director='Wes Anderson',
    )


@pytest.fixture
def review_another_movie(db):
    """Create and return another test movie."""
    return Movie.objects.create(
        title='Moonrise Kingdom',
        description='Two twelve-year-olds fall in love.',
        release_date=date(2012, 5, 25),
        duration=94,
        genre='Drama',
        director='Wes Anderson',
    )


@pytest.fixture
def review(review_user, review_movie):
    """Active review with rating 8 by review_user."""
    return create_review(
        author=review_user,
        movie_id=review_movie.id,
        text='Beautifully framed and very funny.',
        rating=8,
    )


@pytest.fixture
def other_review(review_other_user, review_movie):
    """Active review with rating 10 by review_other_user."""
    return create_review(
        author=review_other_user,
        movie_id=review_movie.id,
        text='A perfect film from start to finish.',
        rating=10,
    )


@pytest.fixture
def deleted_review(review_other_user, review_another_movie):
    """Soft-deleted review by review_other_user."""
    created = create_review(
        author=review_other_user,
        movie_id=review_another_movie.id,
        text='Not really my kind of movie.',
        rating=3,
    )
    delete_review(review_id=created.id, user=review_other_user)
    created.refresh_from_db()
    return created
