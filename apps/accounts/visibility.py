"""
Role-gated visibility of soft-deleted rows.

Movies and reviews are never hard-deleted; they carry a nullable
``deleted_at`` column instead. Every read decides whether such rows are
included through this module, so the rule lives in one place:

- Admin callers see everything, deleted rows included.
- Everyone else (reviewers and anonymous callers) sees active rows only.

The aggregate movie rating does not go through the caller's role at all;
it is always computed from active reviews.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from django.db.models import QuerySet

from .models import Role


@dataclass(frozen=True)
class Active:
    """Row has not been soft-deleted."""


@dataclass(frozen=True)
class Deleted:
    """Row was soft-deleted at ``at``."""

    at: datetime


SoftDeleteState = Union[Active, Deleted]


def soft_delete_state(row) -> SoftDeleteState:
    """Translate the nullable ``deleted_at`` column into a tagged state."""
    if row.deleted_at is None:
        return Active()
    return Deleted(at=row.deleted_at)


def caller_role(user) -> str:
    """
    Resolve the role used for visibility decisions.

    Anonymous callers get the non-privileged role.
    """
    if user is None or not user.is_authenticated:
        return Role.REVIEWER
    return user.role


def is_visible(row, role: str) -> bool:
    """Return True if ``row`` may be shown to a caller with ``role``."""
    if Role.is_privileged(role):
        return True
    return isinstance(soft_delete_state(row), Active)


def filter_visible(queryset: QuerySet, role: str) -> QuerySet:
    """Queryset form of :func:`is_visible`."""
    if Role.is_privileged(role):
        return queryset
    return queryset.filter(deleted_at__isnull=True)
