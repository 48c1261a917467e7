# ==========================================
# apps/movies/admin.py
# ==========================================

from django.contrib import admin
from django.db import transaction

from apps.movies.models import Movie
from apps.movies.services import lock_movie, soft_delete_movie, MovieNotFoundError
from apps.reviews.services import recompute_movie_rating


@admin.register(Movie)
class MovieAdmin(admin.ModelAdmin):
    """Admin interface for Movies."""

    list_display = [
        'title',
        'director',
        'genre',
        'release_date',
        'rating',
        'is_deleted',
        'created_at'
    ]
    list_filter = [
        'genre',
        'release_date',
        'deleted_at',
    ]
    search_fields = [
        'title',
        'director',
        'genre',
        'description'
    ]
    readonly_fields = [
        'rating',
        'created_at',
        'updated_at',
        'deleted_at',
    ]
    date_hierarchy = 'release_date'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': (
                'title',
                'director',
                'genre',
                'release_date',
                'duration',
            )
        }),
        ('Description', {
            'fields': ('description',)
        }),
        ('Statistics', {
            'fields': ('rating',),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at', 'deleted_at'),
            'classes': ('collapse',)
        }),
    )

    @admin.display(boolean=True, description='Deleted')
    def is_deleted(self, obj):
        return obj.is_deleted

    def has_delete_permission(self, request, obj=None):
        # Movies are soft-deleted through the action below
        return False

    actions = ['soft_delete_movies', 'recalculate_ratings']

    def soft_delete_movies(self, request, queryset):
        """Soft delete selected movies and their reviews."""
        count = 0
        for movie_id in queryset.filter(deleted_at__isnull=True).values_list('id', flat=True):
            try:
                soft_delete_movie(movie_id=movie_id)
            except MovieNotFoundError:
                continue
            count += 1
        self.message_user(request, f"Deleted {count} movies")
    soft_delete_movies.short_description = "Soft delete selected movies"

    def recalculate_ratings(self, request, queryset):
        """Recalculate aggregate ratings from active reviews."""
        movie_ids = list(queryset.filter(deleted_at__isnull=True).values_list('id', flat=True))
        for movie_id in movie_ids:
            with transaction.atomic():
                recompute_movie_rating(movie=lock_movie(movie_id=movie_id))
        self.message_user(request, f"Recalculated ratings for {len(movie_ids)} movies")
    recalculate_ratings.short_description = "Recalculate movie ratings"
