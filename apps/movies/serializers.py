from rest_framework import serializers
from .models import Movie
from apps.accounts.visibility import Deleted, caller_role, soft_delete_state
from apps.reviews.serializers import ReviewSerializer
from apps.reviews.services import list_reviews_by_movie


class MovieSerializer(serializers.ModelSerializer):
    """Main serializer for movies. ``rating`` is always read-only."""

    status = serializers.SerializerMethodField()

    class Meta:
        model = Movie
        fields = [
            'id',
            'title',
            'description',
            'release_date',
            'duration',
            'genre',
            'director',
            'rating',
            'status',
            'deleted_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id',
            'rating',
            'status',
            'deleted_at',
            'created_at',
            'updated_at',
        ]

    def get_status(self, obj) -> str:
        if isinstance(soft_delete_state(obj), Deleted):
            return 'deleted'
        return 'active'


class MovieWithReviewsSerializer(MovieSerializer):
    """Movie with its reviews, filtered by the requesting user's role."""

    reviews = serializers.SerializerMethodField()

    class Meta(MovieSerializer.Meta):
        fields = MovieSerializer.Meta.fields + ['reviews']

    def get_reviews(self, obj):
        request = self.context.get('request')
        role = caller_role(request.user if request else None)
        reviews = list_reviews_by_movie(movie_id=obj.id, role=role)
        return ReviewSerializer(reviews, many=True).data


class MovieCreateSerializer(serializers.ModelSerializer):
    """Serializer for creating and updating movies."""

    class Meta:
        model = Movie
        fields = [
            'title',
            'description',
            'release_date',
            'duration',
            'genre',
            'director',
        ]


class MovieListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    class Meta:
        model = Movie
        fields = [
            'id',
            'title',
            'release_date',
            'genre',
            'director',
            'rating',
            'deleted_at',
        ]
        read_only_fields = fields
