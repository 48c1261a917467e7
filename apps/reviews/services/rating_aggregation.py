"""Aggregate rating calculation."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

ONE_PLACE = Decimal('0.1')


def aggregate_ratings(ratings: Iterable[int]) -> Optional[Decimal]:
    """
    Average review ratings to one decimal place, rounding half up.

    Pure and order-independent; the sum and count are exact integers, so
    the only rounding happens once, at the end. Input is assumed to be
    validated (1-10) upstream.

    Args:
        ratings: Ratings of the active reviews of one movie

    Returns:
        Decimal mean such as Decimal('8.5'), or None when there are no ratings

    Example:
        >>> aggregate_ratings([8, 10])
        Decimal('9.0')
        >>> aggregate_ratings([]) is None
        True
    """
    total = 0
    count = 0
    for rating in ratings:
        total += rating
        count += 1

    if count == 0:
        return None

    return (Decimal(total) / Decimal(count)).quantize(ONE_PLACE, rounding=ROUND_HALF_UP)
