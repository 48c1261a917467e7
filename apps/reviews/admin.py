from django.contrib import admin
from django.db import transaction

from apps.movies.services import lock_movie
from .models import Review
from .services import recompute_movie_rating


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """
    Admin interface for Reviews.

    Reviews are read-only here: edits made outside the service layer
    would skip the movie rating recompute.
    """

    list_display = [
        'get_movie_title',
        'author',
        'rating',
        'is_deleted',
        'created_at'
    ]
    list_filter = [
        'rating',
        'created_at',
        'deleted_at',
    ]
    search_fields = [
        'movie__title',
        'author__email',
        'text'
    ]
    readonly_fields = ['movie', 'author', 'text', 'rating', 'created_at', 'updated_at', 'deleted_at']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('movie', 'author', 'rating')
        }),
        ('Review Content', {
            'fields': ('text',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at', 'deleted_at'),
            'classes': ('collapse',)
        }),
    )

    def get_movie_title(self, obj):
        """Display movie title in list."""
        return obj.movie.title
    get_movie_title.short_description = 'Movie'
    get_movie_title.admin_order_field = 'movie__title'

    @admin.display(boolean=True, description='Deleted')
    def is_deleted(self, obj):
        return obj.is_deleted

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('author', 'movie')

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    actions = ['recalculate_movie_ratings']

    def recalculate_movie_ratings(self, request, queryset):
        """Recalculate aggregate ratings for the reviewed movies."""
        movie_ids = set(queryset.filter(movie__deleted_at__isnull=True).values_list('movie_id', flat=True))
        for movie_id in movie_ids:
            with transaction.atomic():
                recompute_movie_rating(movie=lock_movie(movie_id=movie_id))
        self.message_user(request, f"Recalculated ratings for {len(movie_ids)} movies")
    recalculate_movie_ratings.short_description = "Recalculate movie ratings"
