"""
SQLAlchemy ORM models for the registration service.

Import models from this module to ensure they're registered with SQLAlchemy.
"""

from quizfest.models.base import Base, CreatedAtMixin, UUIDMixin
from quizfest.models.registration import ContactSubmission, Registration

__all__ = [
    # Base classes
    "Base",
    "CreatedAtMixin",
    "UUIDMixin",
    # Models
    "Registration",
    "ContactSubmission",
]
