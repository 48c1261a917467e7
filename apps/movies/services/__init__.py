"""Services for movies business logic."""

from .exceptions import (
    MoviesServiceError,
    MovieNotFoundError,
    InvalidSearchError,
)
from .movie_management import (
    create_movie,
    update_movie,
    soft_delete_movie,
    lock_movie,
    get_movie_by_id,
    list_movies,
    search_movies,
    EDITABLE_FIELDS,
)
from .rating_updates import (
    set_movie_rating,
    get_top_rated_movies,
)

__all__ = [
    # Exceptions
    'MoviesServiceError',
    'MovieNotFoundError',
    'InvalidSearchError',
    # Movie Management
    'create_movie',
    'update_movie',
    'soft_delete_movie',
    'lock_movie',
    'get_movie_by_id',
    'list_movies',
    'search_movies',
    'EDITABLE_FIELDS',
    # Rating Updates
    'set_movie_rating',
    'get_top_rated_movies',
]
