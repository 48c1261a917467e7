import pytest
from datetime import date
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, Role
from apps.movies.models import Movie
from apps.reviews.services import create_review


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
def movie_reviewer(db):
    """Create and return a user with the Reviewer role."""
    return User.objects.create_user(
        email='movie_reviewer@example.com',
        password='TestPass123!',
        username='movie_reviewer',
    )


@pytest.fixture
def movie_admin(db):
    """Create and return a user with the Admin role."""
    return User.objects.create_user(
        email='movie_admin@example.com',
        password='TestPass123!',
        username='movie_admin',
        role=Role.ADMIN,
    )


@pytest.fixture
def reviewer_client(movie_reviewer):
    """Return API client authenticated as reviewer."""
    return _client_for(movie_reviewer)


@pytest.fixture
def admin_client(movie_admin):
    """Return API client authenticated as admin."""
    return _client_for(movie_admin)


@pytest.fixture
def movie(db):
    """Create and return a test movie."""
    return Movie.objects.create(
        title='Inception',
        description='A thief who steals corporate secrets through dreams.',
        release_date=date(2010, 7, 16),
        duration=148,
        genre='Science Fiction',
        director='Christopher Nolan',
    )


@pytest.fixture
def another_movie(db):
    """Create and return another test movie."""
    return Movie.objects.create(
        title='Interstellar',
        description='Explorers travel through a wormhole in space.',
        release_date=date(2014, 11, 7),
        duration=169,
        genre='Science Fiction',
        director='Christopher Nolan',
    )


@pytest.fixture
def old_movie(db):
    """Create and return an older drama."""
    return Movie.objects.create(
        title='The Godfather',
        description='The aging patriarch of an organized crime dynasty.',
        release_date=date(1972, 3, 24),
        duration=175,
        genre='Crime Drama',
        director='Francis Ford Coppola',
    )


@pytest.fixture
def movie_review(movie_reviewer, movie):
    """Active review with rating 9 on ``movie``."""
    return create_review(
        author=movie_reviewer,
        movie_id=movie.id,
        text='Mind-bending and beautifully scored.',
        rating=9,
    )


@pytest.fixture
def another_movie_review(movie_reviewer, another_movie):
    """Active review with rating 6 on ``another_movie``."""
    return create_review(
        author=movie_reviewer,
        movie_id=another_movie.id,
        text='Ambitious but a bit too long.',
        rating=6,
    )
