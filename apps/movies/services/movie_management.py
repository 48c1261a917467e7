"""Movie CRUD operations service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Dict, Any
from uuid import UUID

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.visibility import filter_visible
from ..models import Movie
from .exceptions import MovieNotFoundError, InvalidSearchError

logger = logging.getLogger(__name__)

# Fields callers may edit directly. ``rating`` is not one of them:
# it is derived from reviews and only the recompute path writes it.
EDITABLE_FIELDS = (
    'title',
    'description',
    'release_date',
    'duration',
    'genre',
    'director',
)

MIN_RATING = Decimal('1.0')
MAX_RATING = Decimal('10.0')


@transaction.atomic
def create_movie(
    *,
    title: str,
    description: str,
    release_date: date,
    duration: int,
    genre: str,
    director: str,
) -> Movie:
    """
    Create a new movie.

    The aggregate rating starts absent and is filled in by the first
    review.

    Returns:
        Created Movie instance
    """
    movie = Movie.objects.create(
        title=title,
        description=description,
        release_date=release_date,
        duration=duration,
        genre=genre,
        director=director,
    )
    logger.info("Created movie %s (%s)", movie.id, movie.title)
    return movie


@transaction.atomic
def update_movie(
    *,
    movie_id: UUID,
    data: Dict[str, Any]
) -> Movie:
    """
    Update an existing movie.

    Only fields in EDITABLE_FIELDS are applied; anything else in ``data``
    (``rating`` in particular) is ignored.

    Args:
        movie_id: Movie UUID
        data: Fields to update

    Returns:
        Updated Movie instance

    Raises:
        MovieNotFoundError: If movie doesn't exist or is soft-deleted
    """
    movie = lock_movie(movie_id=movie_id)

    changed = []
    for field, value in data.items():
        if field in EDITABLE_FIELDS:
            setattr(movie, field, value)
            changed.append(field)

    if changed:
        movie.save(update_fields=changed + ['updated_at'])

    return movie


@transaction.atomic
def soft_delete_movie(*, movie_id: UUID) -> Movie:
    """
    Soft delete a movie together with its active reviews.

    The movie rating is recomputed in the same transaction; with every
    review gone it becomes absent.

    Raises:
        MovieNotFoundError: If movie doesn't exist or is already deleted
    """
    # Imported here: reviews depends on movies, not the other way round.
    from apps.reviews.models import Review
    from apps.reviews.services.rating_consistency import recompute_movie_rating

    now = timezone.now()

    # Review rows first, then the movie row: same lock order as review
    # update/delete.
    list(
        Review.objects
        .select_for_update()
        .filter(movie_id=movie_id, deleted_at__isnull=True)
        .values_list('id', flat=True)
    )

    movie = lock_movie(movie_id=movie_id)

    # Re-filter under the movie lock so reviews created before the lock
    # was taken are included.
    deleted_count = (
        Review.objects
        .filter(movie_id=movie.id, deleted_at__isnull=True)
        .update(deleted_at=now, updated_at=now)
    )

    movie.deleted_at = now
    movie.save(update_fields=['deleted_at', 'updated_at'])
    recompute_movie_rating(movie=movie)

    logger.info("Soft-deleted movie %s and %d review(s)", movie.id, deleted_count)
    return movie


def lock_movie(*, movie_id: UUID) -> Movie:
    """
    Fetch an active movie with a row lock held until the transaction ends.

    Must be called inside ``transaction.atomic``.

    Raises:
        MovieNotFoundError: If movie doesn't exist or is soft-deleted
    """
    try:
        return (
            Movie.objects
            .select_for_update()
            .get(id=movie_id, deleted_at__isnull=True)
        )
    except Movie.DoesNotExist:
        raise MovieNotFoundError(f"Movie {movie_id} not found")


def get_movie_by_id(*, movie_id: UUID, role: str) -> Movie:
    """
    Get movie by ID as seen by a caller with ``role``.

    Raises:
        MovieNotFoundError: If movie doesn't exist or is hidden from the role
    """
    try:
        return filter_visible(Movie.objects.all(), role).get(id=movie_id)
    except Movie.DoesNotExist:
        raise MovieNotFoundError(f"Movie {movie_id} not found")


def list_movies(*, role: str) -> QuerySet[Movie]:
    """All movies visible to ``role``."""
    return filter_visible(Movie.objects.all(), role)


def search_movies(
    *,
    role: str,
    title: Optional[str] = None,
    genre: Optional[str] = None,
    min_rating: Optional[Decimal] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> QuerySet[Movie]:
    """
    Search movies with optional filters.

    Title and genre use case-insensitive partial matching; the release
    date range is inclusive on both ends.

    Raises:
        InvalidSearchError: If min_rating is outside 1.0-10.0
    """
    queryset = list_movies(role=role)

    if title:
        queryset = queryset.filter(title__icontains=title)

    if genre:
        queryset = queryset.filter(genre__icontains=genre)

    if min_rating is not None:
        min_rating = Decimal(min_rating)
        if not (MIN_RATING <= min_rating <= MAX_RATING):
            raise InvalidSearchError("min_rating must be between 1.0 and 10.0")
        queryset = queryset.filter(rating__gte=min_rating)

    if start_date:
        queryset = queryset.filter(release_date__gte=start_date)

    if end_date:
        queryset = queryset.filter(release_date__lte=end_date)

    return queryset.order_by('title')
