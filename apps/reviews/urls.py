from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'reviews'

router = DefaultRouter()
router.register(r'', views.ReviewViewSet, basename='review')

urlpatterns = [
    # Review ViewSet routes
    # GET    /api/reviews/              - List reviews visible to the caller
    # POST   /api/reviews/              - Create review
    # GET    /api/reviews/{id}/         - Get review
    # PUT    /api/reviews/{id}/         - Update review
    # PATCH  /api/reviews/{id}/         - Partial update
    # DELETE /api/reviews/{id}/         - Soft delete review
    # GET    /api/reviews/my_reviews/   - Current user's reviews

    # Movie review summary
    path('movie/<uuid:movie_id>/summary/', views.movie_review_summary, name='movie-review-summary'),

    path('', include(router.urls)),
]
