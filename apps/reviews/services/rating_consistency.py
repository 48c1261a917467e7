"""
Review writes that keep the movie aggregate rating consistent.

Every review mutation and the rating recompute it triggers run in one
database transaction:

    STARTED -> VALIDATED -> REVIEW_WRITTEN -> RATING_RECOMPUTED
            -> MOVIE_WRITTEN -> COMMITTED

Any failure along the way rolls the whole transaction back (ABORTED), so
a review is never persisted without its movie rating update or the other
way round. Nothing here retries; that is up to the caller.

Locking: create locks the movie row before the uniqueness check; update
and delete lock the review row, then the movie row. The movie lock is
always taken before the active reviews are re-read, so the recompute sees
every review committed by concurrent writers.
"""

import enum
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.db import transaction, DatabaseError

from apps.accounts.models import User
from apps.movies.models import Movie
from apps.movies.services import (
    MoviesServiceError,
    lock_movie,
    set_movie_rating,
)
from apps.reviews.models import Review
from .exceptions import (
    ReviewsServiceError,
    InvalidRatingError,
    MovieNotFoundError,
    StorageFailureError,
)
from .rating_aggregation import aggregate_ratings
from .review_management import (
    store_review,
    update_review_text,
    soft_delete_review,
    find_active_reviews_by_movie,
)
from .uniqueness import check_can_create

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 10


class Stage(enum.Enum):
    STARTED = 'started'
    VALIDATED = 'validated'
    REVIEW_WRITTEN = 'review_written'
    RATING_RECOMPUTED = 'rating_recomputed'
    MOVIE_WRITTEN = 'movie_written'
    COMMITTED = 'committed'
    ABORTED = 'aborted'


class CoordinatedWrite:
    """Progress of one coordinated write, used for logging."""

    def __init__(self, operation: str, **context):
        self.operation = operation
        self.context = context
        self.stage = Stage.STARTED

    def advance(self, stage: Stage) -> None:
        self.stage = stage
        logger.debug("%s %s -> %s", self.operation, self.context, stage.value)

    def abort(self, exc: Exception) -> None:
        logger.warning(
            "%s %s aborted at %s: %s",
            self.operation, self.context, self.stage.value, exc,
        )
        self.stage = Stage.ABORTED


@contextmanager
def coordinated_write(operation: str, **context):
    """
    Run the body in one transaction and translate failures.

    Domain errors propagate unchanged; movie lookup failures become
    MovieNotFoundError and unclassified database errors become
    StorageFailureError. The transaction is rolled back in every case.
    """
    write = CoordinatedWrite(operation, **context)
    try:
        with transaction.atomic():
            yield write
    except ReviewsServiceError as exc:
        write.abort(exc)
        raise
    except MoviesServiceError as exc:
        write.abort(exc)
        raise MovieNotFoundError(str(exc)) from exc
    except DatabaseError as exc:
        logger.exception("%s %s storage failure at %s", operation, context, write.stage.value)
        write.abort(exc)
        raise StorageFailureError("Failed to complete the database transaction") from exc

    write.advance(Stage.COMMITTED)
    logger.info("%s %s committed", operation, context)


def _validate_rating(rating: int) -> None:
    if not (MIN_RATING <= rating <= MAX_RATING):
        raise InvalidRatingError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")


def recompute_movie_rating(
    *,
    movie: Movie,
    write: Optional[CoordinatedWrite] = None,
) -> Optional[Decimal]:
    """
    Re-read the movie's active reviews and store their aggregate.

    Always a full rescan, never an incremental adjustment. Must run
    inside a transaction that holds the movie row lock.

    Returns:
        The new rating (None when the movie has no active reviews)
    """
    ratings = find_active_reviews_by_movie(movie_id=movie.id).values_list('rating', flat=True)
    rating = aggregate_ratings(ratings)
    if write is not None:
        write.advance(Stage.RATING_RECOMPUTED)

    set_movie_rating(movie_id=movie.id, rating=rating)
    movie.rating = rating
    if write is not None:
        write.advance(Stage.MOVIE_WRITTEN)

    return rating


def create_review(*, author: User, movie_id: UUID, text: str, rating: int) -> Review:
    """
    Create a review and update the movie rating atomically.

    Args:
        author: User creating the review
        movie_id: UUID of the reviewed movie
        text: Review body (length validated upstream)
        rating: Rating 1-10

    Returns:
        Created Review instance; ``review.movie.rating`` holds the new aggregate

    Raises:
        InvalidRatingError: If rating not in 1-10 range
        MovieNotFoundError: If movie doesn't exist or is soft-deleted
        DuplicateReviewError: If user already has an active review for the movie
        StorageFailureError: If the transaction fails at the database level
    """
    _validate_rating(rating)

    with coordinated_write('create_review', author=author.id, movie=movie_id) as write:
        movie = lock_movie(movie_id=movie_id)
        check_can_create(author_id=author.id, movie_id=movie.id)
        write.advance(Stage.VALIDATED)

        review = store_review(author=author, movie=movie, text=text, rating=rating)
        write.advance(Stage.REVIEW_WRITTEN)

        recompute_movie_rating(movie=movie, write=write)

    return review


def update_review(
    *,
    review_id: UUID,
    user: User,
    text: Optional[str] = None,
    rating: Optional[int] = None,
) -> Review:
    """
    Update a review's text/rating and recompute the movie rating atomically.

    Raises:
        InvalidRatingError: If rating not in 1-10 range
        ReviewNotFoundError: If review doesn't exist or is soft-deleted
        ForbiddenReviewActionError: If user is not the author
        MovieNotFoundError: If the review's movie is gone
        StorageFailureError: If the transaction fails at the database level
    """
    if rating is not None:
        _validate_rating(rating)

    with coordinated_write('update_review', review=review_id, user=user.id) as write:
        review = update_review_text(review_id=review_id, user=user, text=text, rating=rating)
        write.advance(Stage.REVIEW_WRITTEN)

        movie = lock_movie(movie_id=review.movie_id)
        review.movie = movie
        recompute_movie_rating(movie=movie, write=write)

    return review


def delete_review(*, review_id: UUID, user: User) -> None:
    """
    Soft delete a review and recompute the movie rating atomically.

    Raises:
        ReviewNotFoundError: If review doesn't exist or is already deleted
        ForbiddenReviewActionError: If user is not the author
        MovieNotFoundError: If the review's movie is gone
        StorageFailureError: If the transaction fails at the database level
    """
    with coordinated_write('delete_review', review=review_id, user=user.id) as write:
        review = soft_delete_review(review_id=review_id, user=user)
        write.advance(Stage.REVIEW_WRITTEN)

        movie = lock_movie(movie_id=review.movie_id)
        recompute_movie_rating(movie=movie, write=write)
