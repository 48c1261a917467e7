"""One active review per (author, movie)."""

from uuid import UUID

from apps.reviews.models import Review
from .exceptions import DuplicateReviewError


def check_can_create(*, author_id: UUID, movie_id: UUID) -> None:
    """
    Reject a second active review of the same movie by the same author.

    Call inside the transaction that performs the insert. The check only
    gives a friendly early error; the partial unique constraint on the
    reviews table is what stops two concurrent inserts that both pass it.

    Raises:
        DuplicateReviewError: If an active review already exists
    """
    exists = Review.objects.active().filter(author_id=author_id, movie_id=movie_id).exists()
    if exists:
        raise DuplicateReviewError(
            "You have already reviewed this movie. Please update your existing review instead."
        )
