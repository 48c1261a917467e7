"""
Service layer tests for reviews app.

Tests all service functions for:
- Rating aggregation and the one-active-review guard
- Review store (insert, update, soft delete, role-aware reads)
- Coordinated writes keeping movie.rating consistent
- Atomicity when the rating write fails
- Statistics and the rating repair command
- Concurrency protection (duplicate inserts, lost rating updates)
"""

import io
import logging
import threading
from decimal import Decimal
from unittest import mock
from uuid import uuid4

import pytest
from django.core.management import call_command
from django.db import transaction, connection, DatabaseError, IntegrityError
from django.test import TransactionTestCase

from apps.accounts.models import User, Role
from apps.movies.models import Movie
from apps.movies.services import lock_movie, soft_delete_movie, MovieNotFoundError as MovieLookupError
from apps.reviews.models import Review
from apps.reviews.services import (
    aggregate_ratings,
    check_can_create,
    store_review,
    find_active_reviews_by_movie,
    get_review_by_id,
    list_reviews_by_movie,
    list_reviews_by_user,
    list_all_reviews,
    create_review,
    update_review,
    delete_review,
    recompute_movie_rating,
    get_movie_review_summary,
)
from apps.reviews.services.exceptions import (
    ReviewsServiceError,
    ReviewNotFoundError,
    DuplicateReviewError,
    InvalidRatingError,
    ForbiddenReviewActionError,
    MovieNotFoundError,
    StorageFailureError,
)


def _rating(movie):
    movie.refresh_from_db()
    return movie.rating


# ============================================================================
# RATING AGGREGATION TESTS
# ============================================================================

class TestRatingAggregation:
    """Test the pure aggregate function."""

    def test_empty_is_none(self):
        assert aggregate_ratings([]) is None

    def test_single_rating(self):
        assert aggregate_ratings([7]) == Decimal('7.0')

    def test_mean_of_two(self):
        assert aggregate_ratings([8, 10]) == Decimal('9.0')

    def test_rounds_half_up(self):
        assert aggregate_ratings([8, 9]) == Decimal('8.5')
        assert aggregate_ratings([1, 2, 2]) == Decimal('1.7')
        assert aggregate_ratings([1, 1, 2]) == Decimal('1.3')
        assert aggregate_ratings([1, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2]) == Decimal('2.0')

    def test_order_independent(self):
        assert aggregate_ratings([3, 9, 10]) == aggregate_ratings([10, 3, 9])

    def test_accepts_any_iterable(self):
        assert aggregate_ratings(r for r in (4, 6)) == Decimal('5.0')

    def test_bounds(self):
        assert aggregate_ratings([1, 1]) == Decimal('1.0')
        assert aggregate_ratings([10, 10, 10]) == Decimal('10.0')


# ============================================================================
# UNIQUENESS GUARD TESTS
# ============================================================================

@pytest.mark.django_db
class TestUniquenessGuard:
    """Test the one-active-review-per-movie guard."""

    def test_no_existing_review_passes(self, review_user, review_movie):
        check_can_create(author_id=review_user.id, movie_id=review_movie.id)

    def test_existing_active_review_rejected(self, review, review_user, review_movie):
        with pytest.raises(DuplicateReviewError) as exc_info:
            check_can_create(author_id=review_user.id, movie_id=review_movie.id)

        assert 'already reviewed' in str(exc_info.value)

    def test_other_author_passes(self, review, review_other_user, review_movie):
        check_can_create(author_id=review_other_user.id, movie_id=review_movie.id)

    def test_soft_deleted_review_does_not_count(self, review, review_user, review_movie):
        delete_review(review_id=review.id, user=review_user)

        check_can_create(author_id=review_user.id, movie_id=review_movie.id)


# ============================================================================
# REVIEW STORE TESTS
# ============================================================================

@pytest.mark.django_db
class TestReviewStore:
    """Test row-level review operations."""

    def test_store_review_does_not_touch_movie(self, review_user, review_movie):
        with transaction.atomic():
            created = store_review(author=review_user, movie=review_movie, text='Stored directly.', rating=4)

        assert created.deleted_at is None
        assert _rating(review_movie) is None

    def test_storage_constraint_rejects_duplicate_past_the_guard(self, review, review_user, review_movie):
        """The partial unique index catches what the guard would have."""
        with pytest.raises(DuplicateReviewError):
            with transaction.atomic():
                store_review(author=review_user, movie=review_movie, text='Second one.', rating=2)

        assert Review.objects.filter(author=review_user, movie=review_movie).count() == 1

    def test_raw_duplicate_insert_raises_integrity_error(self, review, review_user, review_movie):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Review.objects.create(author=review_user, movie=review_movie, text='Raw insert.', rating=5)

    def test_soft_deleted_rows_allow_new_insert(self, review, review_user, review_movie):
        Review.objects.filter(id=review.id).update(deleted_at=review.created_at)

        with transaction.atomic():
            store_review(author=review_user, movie=review_movie, text='Fresh start.', rating=5)

        assert Review.objects.filter(author=review_user, movie=review_movie).count() == 2

    def test_rating_check_constraint(self, review_user, review_movie):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Review.objects.create(author=review_user, movie=review_movie, text='Too high.', rating=11)

    def test_find_active_reviews_ignores_deleted(self, review, other_review, review_other_user, review_movie):
        delete_review(review_id=other_review.id, user=review_other_user)

        active = find_active_reviews_by_movie(movie_id=review_movie.id)

        assert list(active) == [review]


# ============================================================================
# VISIBILITY TESTS
# ============================================================================

@pytest.mark.django_db
class TestReviewVisibility:
    """Role-gated reads of soft-deleted reviews."""

    def test_reviewer_cannot_get_deleted_review(self, deleted_review):
        with pytest.raises(ReviewNotFoundError):
            get_review_by_id(review_id=deleted_review.id, role=Role.REVIEWER)

    def test_admin_can_get_deleted_review(self, deleted_review):
        found = get_review_by_id(review_id=deleted_review.id, role=Role.ADMIN)

        assert found.id == deleted_review.id
        assert found.deleted_at is not None

    def test_unknown_review_not_found(self):
        with pytest.raises(ReviewNotFoundError):
            get_review_by_id(review_id=uuid4(), role=Role.ADMIN)

    def test_list_by_movie_filters_for_reviewer(self, review, other_review, review_other_user, review_movie):
        delete_review(review_id=other_review.id, user=review_other_user)

        reviewer_view = list_reviews_by_movie(movie_id=review_movie.id, role=Role.REVIEWER)
        admin_view = list_reviews_by_movie(movie_id=review_movie.id, role=Role.ADMIN)

        assert [r.id for r in reviewer_view] == [review.id]
        assert {r.id for r in admin_view} == {review.id, other_review.id}

    def test_list_by_user(self, review, deleted_review, review_other_user):
        assert list(list_reviews_by_user(user_id=review_other_user.id, role=Role.REVIEWER)) == []
        assert [r.id for r in list_reviews_by_user(user_id=review_other_user.id, role=Role.ADMIN)] == [deleted_review.id]

    def test_list_all_newest_first(self, review, other_review):
        reviews = list(list_all_reviews(role=Role.REVIEWER))

        assert {r.id for r in reviews} == {review.id, other_review.id}
        assert reviews[0].created_at >= reviews[1].created_at


# ============================================================================
# COORDINATED WRITE TESTS
# ============================================================================

@pytest.mark.django_db
class TestCreateReview:
    """Test review creation with rating recompute."""

    def test_create_review_sets_rating(self, review_user, review_movie):
        created = create_review(
            author=review_user,
            movie_id=review_movie.id,
            text='Wonderful pastel palette.',
            rating=8,
        )

        assert created.author == review_user
        assert created.movie_id == review_movie.id
        assert created.rating == 8
        assert created.movie.rating == Decimal('8.0')
        assert _rating(review_movie) == Decimal('8.0')

    def test_second_review_averages(self, review, other_review, review_movie):
        assert _rating(review_movie) == Decimal('9.0')

    def test_duplicate_review_rejected(self, review, review_user, review_movie):
        with pytest.raises(DuplicateReviewError):
            create_review(author=review_user, movie_id=review_movie.id, text='Again and again.', rating=1)

        assert Review.objects.filter(author=review_user, movie=review_movie).count() == 1
        assert _rating(review_movie) == Decimal('8.0')

    def test_re_review_after_soft_delete(self, review, review_user, review_movie):
        delete_review(review_id=review.id, user=review_user)

        create_review(author=review_user, movie_id=review_movie.id, text='Changed my mind.', rating=4)

        assert _rating(review_movie) == Decimal('4.0')
        assert Review.objects.filter(author=review_user, movie=review_movie).count() == 2

    @pytest.mark.parametrize('rating', [0, 11, -3])
    def test_invalid_rating(self, review_user, review_movie, rating):
        with pytest.raises(InvalidRatingError):
            create_review(author=review_user, movie_id=review_movie.id, text='Out of range.', rating=rating)

        assert not Review.objects.exists()

    def test_unknown_movie(self, review_user):
        with pytest.raises(MovieNotFoundError) as exc_info:
            create_review(author=review_user, movie_id=uuid4(), text='Where is it?', rating=5)

        assert isinstance(exc_info.value, ReviewsServiceError)
        assert isinstance(exc_info.value, MovieLookupError)

    def test_soft_deleted_movie(self, review_user, review_movie):
        Movie.objects.filter(id=review_movie.id).update(deleted_at=review_movie.created_at)

        with pytest.raises(MovieNotFoundError):
            create_review(author=review_user, movie_id=review_movie.id, text='Gone already.', rating=5)

        assert not Review.objects.exists()


@pytest.mark.django_db
class TestUpdateReview:
    """Test review update with rating recompute."""

    def test_update_rating_recomputes(self, review, other_review, review_user, review_movie):
        updated = update_review(review_id=review.id, user=review_user, rating=6)

        assert updated.rating == 6
        assert updated.movie.rating == Decimal('8.0')
        assert _rating(review_movie) == Decimal('8.0')

    def test_update_text_only(self, review, review_user, review_movie):
        updated = update_review(review_id=review.id, user=review_user, text='Even better the second time.')

        assert updated.text == 'Even better the second time.'
        assert updated.rating == 8
        assert _rating(review_movie) == Decimal('8.0')

    def test_update_bumps_updated_at(self, review, review_user):
        before = review.updated_at

        updated = update_review(review_id=review.id, user=review_user, rating=9)

        assert updated.updated_at >= before

    def test_update_others_review_forbidden(self, review, review_other_user, review_movie):
        with pytest.raises(ForbiddenReviewActionError):
            update_review(review_id=review.id, user=review_other_user, rating=1)

        review.refresh_from_db()
        assert review.rating == 8
        assert _rating(review_movie) == Decimal('8.0')

    def test_admin_cannot_update_others_review(self, review, review_admin):
        with pytest.raises(ForbiddenReviewActionError):
            update_review(review_id=review.id, user=review_admin, rating=1)

    def test_update_deleted_review_not_found(self, deleted_review, review_other_user):
        with pytest.raises(ReviewNotFoundError):
            update_review(review_id=deleted_review.id, user=review_other_user, rating=9)

    def test_update_unknown_review(self, review_user):
        with pytest.raises(ReviewNotFoundError):
            update_review(review_id=uuid4(), user=review_user, rating=9)

    def test_update_invalid_rating(self, review, review_user):
        with pytest.raises(InvalidRatingError):
            update_review(review_id=review.id, user=review_user, rating=42)

        review.refresh_from_db()
        assert review.rating == 8


@pytest.mark.django_db
class TestDeleteReview:
    """Test review soft delete with rating recompute."""

    def test_delete_recomputes(self, review, other_review, review_other_user, review_movie):
        delete_review(review_id=other_review.id, user=review_other_user)

        other_review.refresh_from_db()
        assert other_review.deleted_at is not None
        assert _rating(review_movie) == Decimal('8.0')

    def test_delete_last_review_clears_rating(self, review, review_user, review_movie):
        delete_review(review_id=review.id, user=review_user)

        assert _rating(review_movie) is None
        assert Review.objects.filter(id=review.id).exists()

    def test_delete_twice_not_found(self, review, review_user):
        delete_review(review_id=review.id, user=review_user)

        with pytest.raises(ReviewNotFoundError):
            delete_review(review_id=review.id, user=review_user)

    def test_delete_others_review_forbidden(self, review, review_other_user, review_movie):
        with pytest.raises(ForbiddenReviewActionError):
            delete_review(review_id=review.id, user=review_other_user)

        review.refresh_from_db()
        assert review.deleted_at is None
        assert _rating(review_movie) == Decimal('8.0')


@pytest.mark.django_db
class TestRatingConsistency:
    """movie.rating always equals the mean of the active reviews."""

    def test_full_lifecycle(self, review_user, review_other_user, review_movie):
        first = create_review(author=review_user, movie_id=review_movie.id, text='Charming and odd.', rating=8)
        assert _rating(review_movie) == Decimal('8.0')

        second = create_review(author=review_other_user, movie_id=review_movie.id, text='Flawless film.', rating=10)
        assert _rating(review_movie) == Decimal('9.0')

        update_review(review_id=first.id, user=review_user, rating=6)
        assert _rating(review_movie) == Decimal('8.0')

        delete_review(review_id=second.id, user=review_other_user)
        assert _rating(review_movie) == Decimal('6.0')

        delete_review(review_id=first.id, user=review_user)
        assert _rating(review_movie) is None

    def test_rating_matches_active_reviews(self, review, other_review, review_movie):
        expected = aggregate_ratings(
            find_active_reviews_by_movie(movie_id=review_movie.id).values_list('rating', flat=True)
        )

        assert _rating(review_movie) == expected

    def test_other_movies_untouched(self, review, review_another_movie):
        assert _rating(review_another_movie) is None

    def test_recompute_repairs_drift(self, review, other_review, review_movie):
        Movie.objects.filter(id=review_movie.id).update(rating=Decimal('2.0'))

        with transaction.atomic():
            result = recompute_movie_rating(movie=lock_movie(movie_id=review_movie.id))

        assert result == Decimal('9.0')
        assert _rating(review_movie) == Decimal('9.0')


@pytest.mark.django_db
class TestAtomicity:
    """A failed rating write leaves no trace of the review write."""

    def test_create_rolled_back_when_rating_write_fails(self, review_user, review_movie):
        with mock.patch(
            'apps.reviews.services.rating_consistency.set_movie_rating',
            side_effect=DatabaseError('disk I/O error'),
        ):
            with pytest.raises(StorageFailureError) as exc_info:
                create_review(author=review_user, movie_id=review_movie.id, text='Never persisted.', rating=7)

        assert isinstance(exc_info.value.__cause__, DatabaseError)
        assert not Review.objects.filter(author=review_user).exists()
        assert _rating(review_movie) is None

    def test_update_rolled_back_when_rating_write_fails(self, review, review_user, review_movie):
        with mock.patch(
            'apps.reviews.services.rating_consistency.set_movie_rating',
            side_effect=DatabaseError('connection lost'),
        ):
            with pytest.raises(StorageFailureError):
                update_review(review_id=review.id, user=review_user, rating=2)

        review.refresh_from_db()
        assert review.rating == 8
        assert _rating(review_movie) == Decimal('8.0')

    def test_delete_rolled_back_when_rating_write_fails(self, review, review_user, review_movie):
        with mock.patch(
            'apps.reviews.services.rating_consistency.set_movie_rating',
            side_effect=DatabaseError('connection lost'),
        ):
            with pytest.raises(StorageFailureError):
                delete_review(review_id=review.id, user=review_user)

        review.refresh_from_db()
        assert review.deleted_at is None
        assert _rating(review_movie) == Decimal('8.0')


@pytest.mark.django_db
class TestCoordinatorLogging:
    """Stage transitions are logged."""

    def test_stages_logged_on_commit(self, review_user, review_movie, caplog):
        with caplog.at_level(logging.DEBUG, logger='apps.reviews.services.rating_consistency'):
            create_review(author=review_user, movie_id=review_movie.id, text='Logged all the way.', rating=5)

        for stage in ('validated', 'review_written', 'rating_recomputed', 'movie_written', 'committed'):
            assert stage in caplog.text

    def test_abort_logged_with_stage(self, review, review_other_user, caplog):
        with caplog.at_level(logging.DEBUG, logger='apps.reviews.services.rating_consistency'):
            with pytest.raises(ForbiddenReviewActionError):
                delete_review(review_id=review.id, user=review_other_user)

        warnings = [
            r for r in caplog.records
            if r.levelno == logging.WARNING and r.name.startswith('apps.reviews')
        ]
        assert len(warnings) == 1
        assert 'aborted at started' in warnings[0].getMessage()


# ============================================================================
# STATISTICS TESTS
# ============================================================================

@pytest.mark.django_db
class TestMovieReviewSummary:
    """Test the per-movie review summary."""

    def test_summary(self, review, other_review, review_movie):
        summary = get_movie_review_summary(movie_id=review_movie.id, role=Role.REVIEWER)

        assert summary['movie_id'] == str(review_movie.id)
        assert summary['movie_title'] == review_movie.title
        assert summary['total_reviews'] == 2
        assert summary['rating'] == '9.0'
        assert summary['rating_breakdown']['8'] == 1
        assert summary['rating_breakdown']['10'] == 1
        assert summary['rating_breakdown']['1'] == 0
        assert len(summary['rating_breakdown']) == 10

    def test_summary_ignores_deleted(self, review, other_review, review_other_user, review_movie):
        delete_review(review_id=other_review.id, user=review_other_user)

        summary = get_movie_review_summary(movie_id=review_movie.id, role=Role.REVIEWER)

        assert summary['total_reviews'] == 1
        assert summary['rating_breakdown']['10'] == 0

    def test_summary_without_reviews(self, review_movie):
        summary = get_movie_review_summary(movie_id=review_movie.id, role=Role.REVIEWER)

        assert summary['total_reviews'] == 0
        assert summary['rating'] is None

    def test_summary_unknown_movie(self):
        with pytest.raises(MovieNotFoundError):
            get_movie_review_summary(movie_id=uuid4(), role=Role.REVIEWER)

    def test_summary_deleted_movie_hidden_from_reviewer(self, review, review_movie):
        soft_delete_movie(movie_id=review_movie.id)

        with pytest.raises(MovieNotFoundError):
            get_movie_review_summary(movie_id=review_movie.id, role=Role.REVIEWER)

    def test_summary_deleted_movie_visible_to_admin(self, review, review_movie):
        soft_delete_movie(movie_id=review_movie.id)

        summary = get_movie_review_summary(movie_id=review_movie.id, role=Role.ADMIN)

        assert summary['movie_id'] == str(review_movie.id)
        assert summary['total_reviews'] == 0
        assert summary['rating'] is None


# ============================================================================
# MANAGEMENT COMMAND TESTS
# ============================================================================

@pytest.mark.django_db
class TestRecomputeMovieRatingsCommand:
    """Test the rating repair command."""

    def test_consistent_ratings(self, review, other_review):
        out = io.StringIO()
        call_command('recompute_movie_ratings', stdout=out)

        assert 'consistent' in out.getvalue()

    def test_dry_run_reports_without_fixing(self, review, review_movie):
        Movie.objects.filter(id=review_movie.id).update(rating=Decimal('3.0'))
        out = io.StringIO()

        call_command('recompute_movie_ratings', '--dry-run', stdout=out)

        assert '1 movie(s)' in out.getvalue()
        assert _rating(review_movie) == Decimal('3.0')

    def test_fixes_drifted_rating(self, review, review_movie, review_another_movie):
        Movie.objects.filter(id=review_movie.id).update(rating=Decimal('3.0'))
        Movie.objects.filter(id=review_another_movie.id).update(rating=Decimal('5.0'))
        out = io.StringIO()

        call_command('recompute_movie_ratings', stdout=out)

        assert _rating(review_movie) == Decimal('8.0')
        assert _rating(review_another_movie) is None
        assert 'Fixed 2' in out.getvalue()


# ============================================================================
# CONCURRENCY TESTS
# ============================================================================

class TestConcurrency(TransactionTestCase):
    """
    Concurrent review writes against one movie.

    TransactionTestCase is required so each thread commits for real
    through its own database connection.
    """

    def setUp(self):
        self.movie = Movie.objects.create(
            title='Isle of Dogs',
            description='A boy searches for his dog.',
            release_date='2018-03-23',
            duration=101,
            genre='Animation',
            director='Wes Anderson',
        )
        self.users = [
            User.objects.create_user(
                email=f'user{i}@test.com',
                password='TestPass123!',
                username=f'user{i}',
            )
            for i in range(5)
        ]

    def _run_threads(self, target, args_list):
        results = []
        errors = []

        def run(*args):
            try:
                results.append(target(*args))
            except ReviewsServiceError as e:
                errors.append(e)
            except Exception as e:
                errors.append(f"Unexpected error: {e!r}")
            finally:
                connection.close()

        threads = [threading.Thread(target=run, args=args) for args in args_list]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        return results, errors

    def test_concurrent_creates_no_lost_updates(self):
        """Every concurrent review is reflected in the final rating."""
        ratings = [2, 4, 6, 8, 10]

        def write(user, rating):
            return create_review(author=user, movie_id=self.movie.id, text='Concurrent opinion.', rating=rating)

        results, errors = self._run_threads(write, list(zip(self.users, ratings)))

        assert len(results) == 5, f"Expected 5 reviews, got {len(results)}; errors: {errors}"
        assert errors == []
        self.movie.refresh_from_db()
        assert self.movie.rating == Decimal('6.0')

    def test_concurrent_duplicate_creates(self):
        """Only one of several simultaneous reviews by one author survives."""
        author = self.users[0]

        def write(rating):
            return create_review(author=author, movie_id=self.movie.id, text='Trying to double up.', rating=rating)

        results, errors = self._run_threads(write, [(r,) for r in (3, 5, 7, 9)])

        assert len(results) == 1
        assert len(errors) == 3
        assert all(isinstance(e, DuplicateReviewError) for e in errors), errors
        assert Review.objects.active().filter(author=author, movie=self.movie).count() == 1
        self.movie.refresh_from_db()
        assert self.movie.rating == Decimal(results[0].rating).quantize(Decimal('0.1'))

    def test_concurrent_mixed_writes(self):
        """Creates, updates and deletes interleave and the rating still matches the reviews."""
        existing = [
            create_review(author=user, movie_id=self.movie.id, text='Initial take.', rating=5)
            for user in self.users[:3]
        ]

        def mutate(kind, index):
            if kind == 'update':
                return update_review(review_id=existing[index].id, user=self.users[index], rating=9)
            if kind == 'delete':
                return delete_review(review_id=existing[index].id, user=self.users[index])
            return create_review(author=self.users[index], movie_id=self.movie.id, text='Late arrival.', rating=1)

        results, errors = self._run_threads(
            mutate,
            [('update', 0), ('delete', 1), ('update', 2), ('create', 3), ('create', 4)],
        )

        assert errors == []
        self.movie.refresh_from_db()
        active = list(Review.objects.active().filter(movie=self.movie).values_list('rating', flat=True))
        assert sorted(active) == [1, 1, 9, 9]
        assert self.movie.rating == aggregate_ratings(active) == Decimal('5.0')
