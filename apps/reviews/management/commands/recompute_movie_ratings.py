"""
Management command to repair stored movie ratings.

Recomputes each active movie's rating from its active reviews and
rewrites the ones that drifted (e.g. after manual database edits).

Usage:
    python manage.py recompute_movie_ratings
    python manage.py recompute_movie_ratings --dry-run
    python manage.py recompute_movie_ratings --movie <uuid>
"""

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from apps.movies.models import Movie
from apps.movies.services import lock_movie
from apps.reviews.services import (
    aggregate_ratings,
    find_active_reviews_by_movie,
    recompute_movie_rating,
)


class Command(BaseCommand):
    help = 'Recompute movie ratings from active reviews and fix drifted values'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show which ratings would change without making changes',
        )
        parser.add_argument(
            '--movie',
            help='Only check the movie with this UUID',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        movies = Movie.objects.active().order_by('title')
        if options['movie']:
            try:
                movies = movies.filter(id=options['movie'])
                found = movies.exists()
            except ValidationError:
                raise CommandError(f"'{options['movie']}' is not a valid movie id")
            if not found:
                raise CommandError(f"Movie {options['movie']} not found")

        drifted = []
        for movie in movies:
            expected = aggregate_ratings(
                find_active_reviews_by_movie(movie_id=movie.id).values_list('rating', flat=True)
            )
            if movie.rating != expected:
                drifted.append(movie)
                self.stdout.write(f'  - {movie} | stored: {movie.rating} | expected: {expected}')

        if not drifted:
            self.stdout.write(self.style.SUCCESS('All movie ratings are consistent.'))
            return

        self.stdout.write(f'\nFound {len(drifted)} movie(s) with a drifted rating.')

        if dry_run:
            self.stdout.write(self.style.WARNING('--dry-run mode: No changes made.'))
            return

        for movie in drifted:
            # Same lock-then-rescan path as review writes
            with transaction.atomic():
                recompute_movie_rating(movie=lock_movie(movie_id=movie.id))

        self.stdout.write(self.style.SUCCESS(f'Fixed {len(drifted)} movie rating(s).'))
