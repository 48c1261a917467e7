from rest_framework import serializers
from .models import Review
from apps.accounts.models import User
from apps.accounts.visibility import Deleted, soft_delete_state
from apps.movies.models import Movie


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class MovieMinimalSerializer(serializers.ModelSerializer):
    """Minimal movie info for nested serialization."""

    class Meta:
        model = Movie
        fields = ['id', 'title', 'release_date', 'rating']
        read_only_fields = fields


class ReviewSerializer(serializers.ModelSerializer):
    """Main review serializer (read side)."""

    author = UserMinimalSerializer(read_only=True)
    movie_detail = MovieMinimalSerializer(source='movie', read_only=True)
    status = serializers.SerializerMethodField()

    class Meta:
        model = Review
        fields = [
            'id',
            'movie',
            'movie_detail',
            'author',
            'text',
            'rating',
            'status',
            'deleted_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_status(self, obj) -> str:
        if isinstance(soft_delete_state(obj), Deleted):
            return 'deleted'
        return 'active'


class ReviewCreateSerializer(serializers.Serializer):
    """
    Input for review creation.

    Movie existence and rating range are checked by the service layer so
    they surface as domain errors.
    """

    movie = serializers.UUIDField()
    text = serializers.CharField(min_length=10)
    rating = serializers.IntegerField()


class ReviewUpdateSerializer(serializers.Serializer):
    """Input for review update. Movie and author cannot be changed."""

    text = serializers.CharField(min_length=10, required=False)
    rating = serializers.IntegerField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide text and/or rating to update')
        return attrs


class MovieReviewSummarySerializer(serializers.Serializer):
    """Summary of reviews for a specific movie."""

    movie_id = serializers.UUIDField()
    movie_title = serializers.CharField()
    total_reviews = serializers.IntegerField()
    rating = serializers.DecimalField(max_digits=3, decimal_places=1, allow_null=True)
    rating_breakdown = serializers.DictField()
    recent_reviews = ReviewSerializer(many=True)
