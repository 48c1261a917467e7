from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'movies'

router = DefaultRouter()
router.register(r'', views.MovieViewSet, basename='movie')

urlpatterns = [
    # Movie ViewSet routes
    # GET    /api/movies/               - List movies (?include_reviews=true)
    # POST   /api/movies/               - Create movie (admin)
    # GET    /api/movies/{id}/          - Get movie details
    # PUT    /api/movies/{id}/          - Update movie (admin)
    # PATCH  /api/movies/{id}/          - Partial update (admin)
    # DELETE /api/movies/{id}/          - Soft delete movie and its reviews (admin)

    # Custom actions
    # GET    /api/movies/search/        - Search movies
    # GET    /api/movies/top_rated/     - Top-rated movies
    # GET    /api/movies/{id}/reviews/  - Reviews of a movie

    path('', include(router.urls)),
]
