"""
Reviews services - Business logic layer.

This package contains all business operations for the reviews app:
- Review writes that keep the movie rating consistent
- Review store and role-aware reads
- Rating aggregation and the one-review-per-movie guard
- Statistics
"""

# Consistency-coordinated writes
from .rating_consistency import (
    create_review,
    update_review,
    delete_review,
    recompute_movie_rating,
    Stage,
)

# Review Store
from .review_management import (
    store_review,
    update_review_text,
    soft_delete_review,
    find_active_reviews_by_movie,
    get_review_by_id,
    list_reviews_by_movie,
    list_reviews_by_user,
    list_all_reviews,
)

# Aggregation and uniqueness
from .rating_aggregation import aggregate_ratings
from .uniqueness import check_can_create

# Statistics
from .statistics import get_movie_review_summary

# Domain Exceptions
from .exceptions import (
    ReviewsServiceError,
    ReviewNotFoundError,
    DuplicateReviewError,
    InvalidRatingError,
    ForbiddenReviewActionError,
    MovieNotFoundError,
    StorageFailureError,
)

__all__ = [
    # Coordinated Writes
    'create_review',
    'update_review',
    'delete_review',
    'recompute_movie_rating',
    'Stage',
    # Review Store
    'store_review',
    'update_review_text',
    'soft_delete_review',
    'find_active_reviews_by_movie',
    'get_review_by_id',
    'list_reviews_by_movie',
    'list_reviews_by_user',
    'list_all_reviews',
    # Aggregation / Uniqueness
    'aggregate_ratings',
    'check_can_create',
    # Statistics
    'get_movie_review_summary',
    # Exceptions
    'ReviewsServiceError',
    'ReviewNotFoundError',
    'DuplicateReviewError',
    'InvalidRatingError',
    'ForbiddenReviewActionError',
    'MovieNotFoundError',
    'StorageFailureError',
]
