"""Statistics service - Review summaries for movie pages."""

from django.db.models import Count
from uuid import UUID

from apps.accounts.visibility import filter_visible
from apps.movies.models import Movie
from .exceptions import MovieNotFoundError
from .review_management import find_active_reviews_by_movie


def get_movie_review_summary(*, movie_id: UUID, role: str) -> dict:
    """
    Get review summary for a specific movie.

    Only active reviews are counted, the same set the movie rating is
    computed from, so ``rating`` and ``total_reviews`` always agree.

    Args:
        movie_id: UUID of the movie
        role: Caller role; only admins can summarize a soft-deleted movie

    Returns:
        Dictionary with:
        - movie_id: str - UUID as string
        - movie_title: str
        - total_reviews: int - Number of active reviews
        - rating: str or None - Stored aggregate rating
        - rating_breakdown: dict - Count for each rating (1-10)

    Raises:
        MovieNotFoundError: If movie doesn't exist or is hidden from the role

    Example:
        >>> summary = get_movie_review_summary(movie_id=movie.id, role=Role.REVIEWER)
        >>> summary['rating_breakdown']['8']
        3
    """
    try:
        movie = filter_visible(Movie.objects.all(), role).get(id=movie_id)
    except Movie.DoesNotExist:
        raise MovieNotFoundError("Movie not found")

    counts = dict(
        find_active_reviews_by_movie(movie_id=movie.id)
        .order_by()
        .values_list('rating')
        .annotate(count=Count('id'))
    )
    rating_breakdown = {str(i): counts.get(i, 0) for i in range(1, 11)}

    return {
        'movie_id': str(movie.id),
        'movie_title': movie.title,
        'total_reviews': sum(rating_breakdown.values()),
        'rating': str(movie.rating) if movie.rating is not None else None,
        'rating_breakdown': rating_breakdown,
    }
