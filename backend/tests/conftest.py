"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- Settings and application factories
- TestClient fixtures with and without a TOTP secret
- A valid registration payload factory
"""

import os
import sys
from pathlib import Path

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ADMIN_USERNAME"] = "festadmin"
os.environ["ADMIN_PASSWORD"] = "correct-horse-battery-staple"
os.environ["ADMIN_PASSWORD_HASH"] = ""
os.environ["ADMIN_SESSION_SECRET"] = "test_session_secret_at_least_32_characters_long"
os.environ["ADMIN_TOTP_SECRET"] = ""
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["LOG_SETUP_ON_STARTUP"] = "false"  # keep caplog's handler on the root logger

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from fastapi.testclient import TestClient  # noqa: E402

from quizfest.core.config import Settings  # noqa: E402
from quizfest.main import create_app  # noqa: E402


ADMIN_USERNAME = "festadmin"
ADMIN_PASSWORD = "correct-horse-battery-staple"
SESSION_SECRET = "test_session_secret_at_least_32_characters_long"
TOTP_SECRET = "JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP"


@pytest.fixture
def make_settings():
    """
    Factory for Settings that ignores any .env file.

    Example:
        settings = make_settings(allow_bulk_listing=True)
    """
    def _make(**overrides) -> Settings:
        values = {
            "admin_username": ADMIN_USERNAME,
            "admin_password": ADMIN_PASSWORD,
            "admin_session_secret": SESSION_SECRET,
            "database_url": "sqlite+aiosqlite:///:memory:",
            "environment": "test",
            "log_setup_on_startup": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def make_client(make_settings):
    """
    Factory for a started TestClient; each app gets its own in-memory DB.

    Clients are closed (lifespan shutdown) at fixture teardown.
    """
    clients = []

    def _make(**overrides) -> TestClient:
        test_client = TestClient(create_app(make_settings(**overrides)))
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    """Application without a TOTP secret."""
    return make_client()


@pytest.fixture
def totp_client(make_client) -> TestClient:
    """Application requiring a TOTP code after the password."""
    return make_client(admin_totp_secret=TOTP_SECRET, allow_bulk_listing=True)


def login(test_client: TestClient, username: str = ADMIN_USERNAME, password: str = ADMIN_PASSWORD):
    return test_client.post(
        "/api/admin/login",
        json={"username": username, "password": password},
    )


@pytest.fixture
def registration_payload():
    """
    Factory for a valid public registration body (camelCase, as sent by the form).
    """
    def _make(index: int = 1, **overrides) -> dict:
        payload = {
            "nameEnglish": f"Student Number {index}",
            "nameBangla": "শিক্ষার্থী",
            "fatherName": f"Abdul Karim {index}",
            "motherName": "Rahima Begum",
            "studentId": f"STU-{index:04d}",
            "class": "7",
            "section": "B",
            "bloodGroup": "O+",
            "phoneWhatsapp": "017801840381",
            "email": f"student{index}@school.edu.bd",
            "presentAddress": "House 12, Road 5, Dhanmondi, Dhaka",
            "permanentAddress": "Village Char Fasson, Bhola",
            "classCategory": "06-08",
        }
        payload.update(overrides)
        return payload

    return _make
