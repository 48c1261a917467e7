from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_date
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.accounts.permissions import IsAdminRoleOrReadOnly
from apps.accounts.visibility import caller_role
from apps.reviews.serializers import ReviewSerializer
from apps.reviews.services import list_reviews_by_movie
from .serializers import (
    MovieSerializer,
    MovieWithReviewsSerializer,
    MovieCreateSerializer,
    MovieListSerializer,
)
from .services import (
    create_movie,
    update_movie,
    soft_delete_movie,
    get_movie_by_id,
    list_movies,
    search_movies,
    get_top_rated_movies,
    MovieNotFoundError,
    InvalidSearchError,
)


class MoviePagination(PageNumberPagination):
    """Custom pagination for movies."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _include_reviews(request):
    return request.query_params.get('include_reviews', 'false').lower() == 'true'


class MovieViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Movie CRUD operations.

    list: Get movies visible to the caller
    create: Create a new movie (admin only)
    retrieve: Get a specific movie
    update: Update a movie (admin only, rating excluded)
    partial_update: Partially update a movie (admin only)
    destroy: Soft delete a movie and its reviews (admin only)

    ``?include_reviews=true`` embeds the movie's reviews on list and
    retrieve.
    """

    serializer_class = MovieSerializer
    permission_classes = [IsAdminRoleOrReadOnly]
    pagination_class = MoviePagination
    lookup_value_regex = '[0-9a-f-]{36}'

    def get_queryset(self):
        return list_movies(role=caller_role(self.request.user))

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action in ('list', 'retrieve') and _include_reviews(self.request):
            return MovieWithReviewsSerializer
        if self.action == 'list':
            return MovieListSerializer
        if self.action in ('create', 'update', 'partial_update'):
            return MovieCreateSerializer
        return MovieSerializer

    def retrieve(self, request, *args, **kwargs):
        try:
            movie = get_movie_by_id(movie_id=kwargs['pk'], role=caller_role(request.user))
        except MovieNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        serializer = self.get_serializer(movie)
        return Response(serializer.data)

    @extend_schema(request=MovieCreateSerializer, responses={201: MovieSerializer})
    def create(self, request, *args, **kwargs):
        """Create a new movie."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        movie = create_movie(**serializer.validated_data)

        return Response(
            MovieSerializer(movie).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(request=MovieCreateSerializer, responses={200: MovieSerializer})
    def update(self, request, *args, **kwargs):
        """Update movie fields; ``rating`` is never accepted here."""
        partial = kwargs.pop('partial', False)
        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        try:
            movie = update_movie(movie_id=kwargs['pk'], data=serializer.validated_data)
        except MovieNotFoundError as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_404_NOT_FOUND
            )

        return Response(MovieSerializer(movie).data)

    def destroy(self, request, *args, **kwargs):
        """Soft delete a movie."""
        try:
            soft_delete_movie(movie_id=kwargs['pk'])
        except MovieNotFoundError as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_404_NOT_FOUND
            )

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        parameters=[
            OpenApiParameter('title', OpenApiTypes.STR, description='Partial title match'),
            OpenApiParameter('genre', OpenApiTypes.STR, description='Partial genre match'),
            OpenApiParameter('min_rating', OpenApiTypes.NUMBER, description='Minimum rating (1.0-10.0)'),
            OpenApiParameter('start_date', OpenApiTypes.DATE, description='Released on or after'),
            OpenApiParameter('end_date', OpenApiTypes.DATE, description='Released on or before'),
        ],
        responses={200: MovieListSerializer(many=True)},
    )
    @action(detail=False, methods=['get'])
    def search(self, request):
        """Search movies by title, genre, minimum rating and release dates."""
        params = request.query_params

        min_rating = params.get('min_rating') or None
        if min_rating is not None:
            try:
                min_rating = Decimal(min_rating)
            except InvalidOperation:
                return Response(
                    {'error': 'min_rating must be a number'},
                    status=status.HTTP_400_BAD_REQUEST
                )

        dates = {}
        for name in ('start_date', 'end_date'):
            value = params.get(name)
            if value:
                try:
                    dates[name] = parse_date(value)
                except ValueError:
                    dates[name] = None
                if dates[name] is None:
                    return Response(
                        {'error': f'{name} must be a date (YYYY-MM-DD)'},
                        status=status.HTTP_400_BAD_REQUEST
                    )

        try:
            movies = search_movies(
                role=caller_role(request.user),
                title=params.get('title'),
                genre=params.get('genre'),
                min_rating=min_rating,
                **dates,
            )
        except InvalidSearchError as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_400_BAD_REQUEST
            )

        page = self.paginate_queryset(movies)
        if page is not None:
            return self.get_paginated_response(MovieListSerializer(page, many=True).data)
        return Response(MovieListSerializer(movies, many=True).data)

    @extend_schema(
        parameters=[
            OpenApiParameter('limit', OpenApiTypes.INT, description='Number of movies (1-100)', default=10),
        ],
        responses={200: MovieListSerializer(many=True)},
    )
    @action(detail=False, methods=['get'])
    def top_rated(self, request):
        """Get top-rated movies."""
        try:
            limit = max(1, min(int(request.query_params.get('limit', 10)), 100))
        except ValueError:
            limit = 10

        movies = get_top_rated_movies(limit=limit)
        return Response(MovieListSerializer(movies, many=True).data)

    @extend_schema(responses={200: ReviewSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def reviews(self, request, pk=None):
        """Get reviews of a movie visible to the caller."""
        role = caller_role(request.user)
        try:
            movie = get_movie_by_id(movie_id=pk, role=role)
        except MovieNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        reviews = list_reviews_by_movie(movie_id=movie.id, role=role)
        page = self.paginate_queryset(reviews)
        if page is not None:
            return self.get_paginated_response(ReviewSerializer(page, many=True).data)
        return Response(ReviewSerializer(reviews, many=True).data)
