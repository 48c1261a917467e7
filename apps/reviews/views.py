from uuid import UUID

from rest_framework import status, viewsets, serializers as drf_serializers
from rest_framework.decorators import api_view, action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.accounts.visibility import caller_role
from .serializers import (
    ReviewSerializer,
    ReviewCreateSerializer,
    ReviewUpdateSerializer,
    MovieReviewSummarySerializer,
)
from .services import (
    create_review,
    update_review,
    delete_review,
    get_review_by_id,
    list_all_reviews,
    list_reviews_by_movie,
    list_reviews_by_user,
    get_movie_review_summary,
    ReviewNotFoundError,
    DuplicateReviewError,
    InvalidRatingError,
    ForbiddenReviewActionError,
    MovieNotFoundError,
    StorageFailureError,
)


class ErrorResponseSerializer(drf_serializers.Serializer):
    error = drf_serializers.CharField()


class ReviewPagination(PageNumberPagination):
    """Custom pagination for reviews."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _uuid_param(request, name):
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        raise ValidationError({name: 'Must be a valid UUID'})


def _error(exc, status_code):
    return Response({'error': str(exc)}, status=status_code)


class ReviewViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Review CRUD operations.

    list: Get reviews visible to the caller (with filters)
    create: Create a new review and update the movie rating
    retrieve: Get a specific review
    update: Update a review (author only)
    partial_update: Partially update a review (author only)
    destroy: Soft delete a review (author only)

    Reviewers and anonymous callers only see active reviews; admins also
    see soft-deleted ones.
    """

    serializer_class = ReviewSerializer
    permission_classes = [IsAuthenticatedOrReadOnly]
    pagination_class = ReviewPagination
    lookup_value_regex = '[0-9a-f-]{36}'

    def get_queryset(self):
        """
        Filter reviews based on query parameters.

        Filters:
        - movie: UUID of movie
        - author: UUID of author
        - min_rating: Minimum rating (1-10)
        """
        queryset = list_all_reviews(role=caller_role(self.request.user))

        movie_id = _uuid_param(self.request, 'movie')
        if movie_id:
            queryset = queryset.filter(movie_id=movie_id)

        author_id = _uuid_param(self.request, 'author')
        if author_id:
            queryset = queryset.filter(author_id=author_id)

        min_rating = self.request.query_params.get('min_rating')
        if min_rating:
            try:
                queryset = queryset.filter(rating__gte=int(min_rating))
            except ValueError:
                raise ValidationError({'min_rating': 'Must be an integer'})

        return queryset

    def get_serializer_class(self):
        if self.action == 'create':
            return ReviewCreateSerializer
        if self.action in ('update', 'partial_update'):
            return ReviewUpdateSerializer
        return ReviewSerializer

    @extend_schema(responses={200: ReviewSerializer, 404: ErrorResponseSerializer})
    def retrieve(self, request, *args, **kwargs):
        try:
            review = get_review_by_id(review_id=kwargs['pk'], role=caller_role(request.user))
        except ReviewNotFoundError as e:
            return _error(e, status.HTTP_404_NOT_FOUND)

        serializer = self.get_serializer(review)
        return Response(serializer.data)

    @extend_schema(
        request=ReviewCreateSerializer,
        responses={
            201: ReviewSerializer,
            400: ErrorResponseSerializer,
            404: ErrorResponseSerializer,
            409: ErrorResponseSerializer,
            503: ErrorResponseSerializer,
        },
    )
    def create(self, request, *args, **kwargs):
        """Create review; the movie rating is recomputed in the same transaction."""
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            review = create_review(
                author=request.user,
                movie_id=serializer.validated_data['movie'],
                text=serializer.validated_data['text'],
                rating=serializer.validated_data['rating'],
            )
        except InvalidRatingError as e:
            return _error(e, status.HTTP_400_BAD_REQUEST)
        except MovieNotFoundError as e:
            return _error(e, status.HTTP_404_NOT_FOUND)
        except DuplicateReviewError as e:
            return _error(e, status.HTTP_409_CONFLICT)
        except StorageFailureError as e:
            return _error(e, status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(
            ReviewSerializer(review, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        request=ReviewUpdateSerializer,
        responses={
            200: ReviewSerializer,
            400: ErrorResponseSerializer,
            403: ErrorResponseSerializer,
            404: ErrorResponseSerializer,
            503: ErrorResponseSerializer,
        },
    )
    def update(self, request, *args, **kwargs):
        """Update review (author only); PUT and PATCH both accept partial input."""
        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            review = update_review(
                review_id=kwargs['pk'],
                user=request.user,
                text=serializer.validated_data.get('text'),
                rating=serializer.validated_data.get('rating'),
            )
        except InvalidRatingError as e:
            return _error(e, status.HTTP_400_BAD_REQUEST)
        except ForbiddenReviewActionError as e:
            return _error(e, status.HTTP_403_FORBIDDEN)
        except (ReviewNotFoundError, MovieNotFoundError) as e:
            return _error(e, status.HTTP_404_NOT_FOUND)
        except StorageFailureError as e:
            return _error(e, status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(ReviewSerializer(review, context=self.get_serializer_context()).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    @extend_schema(
        responses={
            204: None,
            403: ErrorResponseSerializer,
            404: ErrorResponseSerializer,
            503: ErrorResponseSerializer,
        },
    )
    def destroy(self, request, *args, **kwargs):
        """Soft delete review (author only)."""
        try:
            delete_review(review_id=kwargs['pk'], user=request.user)
        except ForbiddenReviewActionError as e:
            return _error(e, status.HTTP_403_FORBIDDEN)
        except (ReviewNotFoundError, MovieNotFoundError) as e:
            return _error(e, status.HTTP_404_NOT_FOUND)
        except StorageFailureError as e:
            return _error(e, status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'], permission_classes=[IsAuthenticated])
    def my_reviews(self, request):
        """Get current user's reviews."""
        reviews = list_reviews_by_user(user_id=request.user.id, role=caller_role(request.user))
        page = self.paginate_queryset(reviews)

        if page is not None:
            serializer = ReviewSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = ReviewSerializer(reviews, many=True)
        return Response(serializer.data)


@extend_schema(
    responses={
        200: MovieReviewSummarySerializer,
        404: ErrorResponseSerializer,
    },
    parameters=[
        OpenApiParameter('movie_id', OpenApiTypes.UUID, OpenApiParameter.PATH),
    ],
    description="Get review summary for a movie including rating breakdown and recent reviews.",
    tags=['reviews'],
)
@api_view(['GET'])
def movie_review_summary(request, movie_id):
    """Get review summary for a movie using service layer."""
    role = caller_role(request.user)
    try:
        data = get_movie_review_summary(movie_id=movie_id, role=role)
    except MovieNotFoundError as e:
        return _error(e, status.HTTP_404_NOT_FOUND)

    # Recent reviews are view-specific, filtered by the caller's role
    data['recent_reviews'] = list_reviews_by_movie(movie_id=movie_id, role=role)[:5]

    serializer = MovieReviewSummarySerializer(data)
    return Response(serializer.data)
