"""Review store - row-level operations on reviews.

These functions never touch the movie row. Writes that must keep the
movie rating in sync go through ``rating_consistency`` instead.
"""

from django.db import IntegrityError
from django.db.models import QuerySet
from django.utils import timezone
from uuid import UUID
from typing import Optional

from apps.accounts.models import User
from apps.accounts.visibility import filter_visible
from apps.movies.models import Movie
from apps.reviews.models import Review
from .exceptions import (
    ReviewNotFoundError,
    DuplicateReviewError,
    ForbiddenReviewActionError,
)


def store_review(*, author: User, movie: Movie, text: str, rating: int) -> Review:
    """
    Insert a new review row.

    Args:
        author: User writing the review
        movie: Reviewed movie (already locked by the caller)
        text: Review body
        rating: Rating 1-10

    Returns:
        Created Review instance

    Raises:
        DuplicateReviewError: If the unique active-review constraint rejects the insert
    """
    try:
        return Review.objects.create(
            movie=movie,
            author=author,
            text=text,
            rating=rating,
        )
    except IntegrityError:
        # Database unique constraint caught a concurrent duplicate
        raise DuplicateReviewError("You have already reviewed this movie")


def _lock_own_review(*, review_id: UUID, user: User, verb: str) -> Review:
    # Deleted reviews can't be edited or deleted again
    try:
        review = (
            Review.objects
            .select_for_update()
            .active()
            .get(id=review_id)
        )
    except Review.DoesNotExist:
        raise ReviewNotFoundError(f"Review {review_id} not found")

    if review.author_id != user.id:
        raise ForbiddenReviewActionError(f"You can only {verb} your own reviews")

    return review


def update_review_text(
    *,
    review_id: UUID,
    user: User,
    text: Optional[str] = None,
    rating: Optional[int] = None,
) -> Review:
    """
    Replace text and/or rating of an active review.

    Only the review author can update their review. Movie and author
    cannot be changed. Must run inside a transaction (row lock).

    Raises:
        ReviewNotFoundError: If review doesn't exist or is soft-deleted
        ForbiddenReviewActionError: If user is not the author
    """
    review = _lock_own_review(review_id=review_id, user=user, verb='update')

    if text is not None:
        review.text = text
    if rating is not None:
        review.rating = rating

    review.save(update_fields=['text', 'rating', 'updated_at'])
    return review


def soft_delete_review(*, review_id: UUID, user: User) -> Review:
    """
    Soft delete a review; the row stays for admins and auditing.

    Must run inside a transaction (row lock).

    Raises:
        ReviewNotFoundError: If review doesn't exist or is already deleted
        ForbiddenReviewActionError: If user is not the author
    """
    review = _lock_own_review(review_id=review_id, user=user, verb='delete')

    review.deleted_at = timezone.now()
    review.save(update_fields=['deleted_at', 'updated_at'])
    return review


def find_active_reviews_by_movie(*, movie_id: UUID) -> QuerySet[Review]:
    """
    Active reviews of a movie, whoever is asking.

    This is the input of the aggregate rating.
    """
    return Review.objects.active().filter(movie_id=movie_id)


def _base_queryset() -> QuerySet[Review]:
    return Review.objects.select_related('author', 'movie')


def get_review_by_id(*, review_id: UUID, role: str) -> Review:
    """
    Retrieve a review by ID as seen by a caller with ``role``.

    Raises:
        ReviewNotFoundError: If review doesn't exist or is hidden from the role
    """
    try:
        return filter_visible(_base_queryset(), role).get(id=review_id)
    except Review.DoesNotExist:
        raise ReviewNotFoundError("Review not found")


def list_reviews_by_movie(*, movie_id: UUID, role: str) -> QuerySet[Review]:
    """Reviews of a movie visible to ``role``, newest first."""
    queryset = _base_queryset().filter(movie_id=movie_id)
    return filter_visible(queryset, role).order_by('-created_at')


def list_reviews_by_user(*, user_id: UUID, role: str) -> QuerySet[Review]:
    """Reviews written by a user visible to ``role``, newest first."""
    queryset = _base_queryset().filter(author_id=user_id)
    return filter_visible(queryset, role).order_by('-created_at')


def list_all_reviews(*, role: str) -> QuerySet[Review]:
    """All reviews visible to ``role``, newest first."""
    return filter_visible(_base_queryset(), role).order_by('-created_at')
