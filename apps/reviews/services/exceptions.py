"""Domain exceptions for reviews app."""

from apps.movies.services.exceptions import MovieNotFoundError as _MovieLookupError


class ReviewsServiceError(Exception):
    """Base exception for all reviews service errors."""
    pass


class ReviewNotFoundError(ReviewsServiceError):
    """Review does not exist or is invisible to the caller."""
    pass


class DuplicateReviewError(ReviewsServiceError):
    """User already has an active review for this movie."""
    pass


class InvalidRatingError(ReviewsServiceError):
    """Rating must be between 1 and 10."""
    pass


class ForbiddenReviewActionError(ReviewsServiceError):
    """User is not the author of this review."""
    pass


class MovieNotFoundError(ReviewsServiceError, _MovieLookupError):
    """Movie referenced by a review write is missing or deleted."""
    pass


class StorageFailureError(ReviewsServiceError):
    """Transaction or store-level fault; may be transient."""
    pass
