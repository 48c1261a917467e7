# ==========================================
# apps/movies/models.py
# ==========================================

from django.db import models
from django.db.models import Q
from django.core.validators import MinValueValidator, MaxValueValidator
from decimal import Decimal
import uuid


class MovieQuerySet(models.QuerySet):

    def active(self):
        return self.filter(deleted_at__isnull=True)


class Movie(models.Model):
    """Movie with its derived aggregate rating."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField()
    release_date = models.DateField()
    duration = models.PositiveIntegerField(validators=[MinValueValidator(1)], help_text='Duration in minutes')
    genre = models.CharField(max_length=255)
    director = models.CharField(max_length=255)
    # Derived from active reviews; written only by the rating recompute path.
    rating = models.DecimalField(
        max_digits=3,
        decimal_places=1,
        null=True,
        blank=True,
        editable=False,
        validators=[MinValueValidator(Decimal('1.0')), MaxValueValidator(Decimal('10.0'))],
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = MovieQuerySet.as_manager()

    class Meta:
        db_table = 'movies'
        constraints = [
            models.CheckConstraint(
                condition=Q(rating__isnull=True) | Q(rating__gte=Decimal('1.0'), rating__lte=Decimal('10.0')),
                name='movie_rating_range',
            ),
        ]
        indexes = [
            models.Index(fields=['title'], name='movies_title_idx'),
            models.Index(fields=['rating'], name='movies_rating_idx'),
            models.Index(fields=['release_date'], name='movies_release_date_idx'),
            models.Index(fields=['deleted_at'], name='movies_deleted_at_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.release_date.year})"

    @property
    def is_deleted(self):
        return self.deleted_at is not None
