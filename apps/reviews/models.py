# ==========================================
# apps/reviews/models.py
# ==========================================

from django.db import models
from django.db.models import Q
from django.core.validators import MinValueValidator, MaxValueValidator
import uuid


class ReviewQuerySet(models.QuerySet):

    def active(self):
        return self.filter(deleted_at__isnull=True)


class Review(models.Model):
    """User review/rating of a movie."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    movie = models.ForeignKey('movies.Movie', on_delete=models.PROTECT, related_name='reviews')
    author = models.ForeignKey('accounts.User', on_delete=models.PROTECT, related_name='reviews')
    text = models.TextField()
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(10)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ReviewQuerySet.as_manager()

    class Meta:
        db_table = 'reviews'
        constraints = [
            # One active review per (author, movie); soft-deleted rows don't count.
            models.UniqueConstraint(
                fields=['author', 'movie'],
                condition=Q(deleted_at__isnull=True),
                name='unique_active_review_per_author_movie',
            ),
            models.CheckConstraint(
                condition=Q(rating__gte=1, rating__lte=10),
                name='review_rating_range',
            ),
        ]
        indexes = [
            models.Index(fields=['movie', 'deleted_at'], name='reviews_movie_deleted_idx'),
            models.Index(fields=['author', 'created_at'], name='reviews_author_created_idx'),
            models.Index(fields=['created_at'], name='reviews_created_at_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.author.get_display_name()} - {self.movie.title} ({self.rating}/10)"

    @property
    def is_deleted(self):
        return self.deleted_at is not None
