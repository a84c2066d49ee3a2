"""Domain errors raised by the learning services.

The API layer maps them onto HTTP status codes:

  NotFoundError          → 404
  NotEligibleError       → 400
  PermissionDeniedError  → 403
  ValidationError        → 422

DuplicateRecordError lives with the store (app/repos/academy_repo.py)
because it is raised below the services; services either absorb it
("already awarded") or let the API turn it into a 409.
"""

from __future__ import annotations


class AcademyError(Exception):
    """Base class for every error a learning service raises on purpose."""


class NotFoundError(AcademyError):
    """A referenced entity (course, block, assessment, ...) does not exist."""


class NotEligibleError(AcademyError):
    """The action's precondition is not met, e.g. certificate before completion."""


class PermissionDeniedError(AcademyError):
    """The caller may not act on this record."""


class ValidationError(AcademyError):
    """Input is well-formed JSON but semantically invalid."""
