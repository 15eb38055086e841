"""
Repository layer for data access.

Provides data access abstractions following the Repository pattern,
isolating database access from business logic.
"""

from quizfest.repositories.contact import ContactRepository
from quizfest.repositories.registration import RegistrationRepository

__all__ = ["ContactRepository", "RegistrationRepository"]
