"""Movie aggregate rating writes with concurrency protection."""

from django.db import transaction
from decimal import Decimal
from typing import Optional
from uuid import UUID

from ..models import Movie
from .exceptions import MovieNotFoundError


@transaction.atomic
def set_movie_rating(*, movie_id: UUID, rating: Optional[Decimal]) -> Movie:
    """
    Store a recomputed aggregate rating on a movie.

    Touches only ``rating`` and ``updated_at``. Uses select_for_update()
    so rating writes for the same movie are serialized; callers that
    already hold the lock simply re-acquire it.

    Writing the same value twice leaves the movie unchanged apart from
    ``updated_at``.

    Args:
        movie_id: Movie UUID
        rating: Aggregate with one decimal place, or None for no reviews

    Returns:
        Updated Movie instance

    Raises:
        MovieNotFoundError: If movie doesn't exist
    """
    try:
        movie = (
            Movie.objects
            .select_for_update()
            .get(id=movie_id)
        )
    except Movie.DoesNotExist:
        raise MovieNotFoundError(f"Movie {movie_id} not found")

    movie.rating = rating
    movie.save(update_fields=['rating', 'updated_at'])

    return movie


def get_top_rated_movies(*, limit: int = 10):
    """
    Get top-rated active movies.

    Movies without any reviews (no rating) are left out.

    Args:
        limit: Number of movies to return

    Returns:
        QuerySet of top-rated movies
    """
    return (
        Movie.objects
        .active()
        .filter(rating__isnull=False)
        .order_by('-rating', 'title')[:limit]
    )
