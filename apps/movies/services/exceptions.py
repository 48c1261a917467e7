"""Domain-specific exceptions for movies services."""


class MoviesServiceError(Exception):
    """Base exception for movies services."""
    pass


class MovieNotFoundError(MoviesServiceError):
    """Raised when movie does not exist or is invisible to the caller."""
    pass


class InvalidSearchError(MoviesServiceError):
    """Raised when search parameters are out of range."""
    pass
