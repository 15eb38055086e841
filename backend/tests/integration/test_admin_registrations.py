"""
Integration tests for admin data access: masked search, bulk listing
policy, step-up export and the contact inbox.

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import csv
import io
import logging

import pytest

from conftest import ADMIN_PASSWORD, login
from quizfest.core.config import RateLimitRule

pytestmark = pytest.mark.integration


@pytest.fixture
def admin_client(make_client):
    """Logged-in admin; registration limit raised so tests can seed data."""
    test_client = make_client(rate_limit_registration=RateLimitRule(max_requests=100, window_seconds=60))
    assert login(test_client).status_code == 200
    return test_client


@pytest.fixture
def seed(admin_client, registration_payload):
    def _seed(index: int = 1, **overrides) -> dict:
        response = admin_client.post("/api/registrations", json=registration_payload(index, **overrides))
        assert response.status_code == 201
        return response.json()["data"]

    return _seed


class TestSearch:

    def test_search_by_registration_number_masks_pii(self, admin_client, seed):
        """
        Arrange: One registration
        Act: Search by its registration number
        Assert: Record found with contact details masked
        """
        # Arrange
        number = seed(1)["registrationNumber"]

        # Act
        response = admin_client.get(f"/api/admin/registrations/search/{number}")

        # Assert
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["registrationNumber"] == number
        assert data["studentId"] == "STU-0001"
        assert data["phoneWhatsapp"] == "017******381"
        assert data["email"] == "st***@school.edu.bd"
        assert data["fatherName"] == "Abdul ***"
        assert data["presentAddress"] == "House 12, Road 5, Dh..."
        assert data["class"] == "7"
        assert "017801840381" not in response.text

    def test_search_is_case_insensitive_for_numbers(self, admin_client, seed):
        number = seed(1)["registrationNumber"]

        response = admin_client.get(f"/api/admin/registrations/search/{number.lower()}")

        assert response.status_code == 200
        assert response.json()["data"]["registrationNumber"] == number

    def test_search_by_student_id(self, admin_client, seed):
        seed(1)
        seed(2)

        response = admin_client.get("/api/admin/registrations/search/STU-0002")

        assert response.status_code == 200
        assert response.json()["data"]["studentId"] == "STU-0002"

    def test_not_found(self, admin_client, seed):
        seed(1)

        response = admin_client.get("/api/admin/registrations/search/QF-NOPE1")

        assert response.status_code == 404
        assert response.json() == {"detail": "Registration not found"}

    @pytest.mark.parametrize("term", ["x", "!!", "%24%25"])
    def test_term_too_short_after_sanitizing(self, admin_client, term):
        response = admin_client.get(f"/api/admin/registrations/search/{term}")

        assert response.status_code == 400
        assert response.json()["detail"] == "Search term must be at least 2 characters"
        assert response.json()["errors"][0]["field"] == "term"

    def test_requires_session(self, client):
        response = client.get("/api/admin/registrations/search/QF-00001")

        assert response.status_code == 401

    def test_search_rate_limited(self, admin_client):
        statuses = [
            admin_client.get(f"/api/admin/registrations/search/QF-{i:05d}").status_code
            for i in range(21)
        ]

        assert statuses[:20] == [404] * 20
        assert statuses[20] == 429

    def test_search_audited_with_number_only(self, admin_client, seed, caplog):
        number = seed(1)["registrationNumber"]
        caplog.set_level(logging.INFO, logger="quizfest.audit")

        admin_client.get(f"/api/admin/registrations/search/{number}")

        record = next(r for r in caplog.records if getattr(r, "action", None) == "registrations.search")
        assert record.outcome == "success"
        assert record.registration_number == number
        assert "017801840381" not in caplog.text


class TestBulkListing:

    def test_disabled_by_default(self, admin_client, seed):
        seed(1)

        response = admin_client.get("/api/admin/registrations")

        assert response.status_code == 403
        assert response.json() == {
            "detail": "Bulk listing is disabled. Use search, or export with password confirmation."
        }

    def test_enabled_by_setting(self, make_client, registration_payload):
        test_client = make_client(allow_bulk_listing=True)
        test_client.post("/api/registrations", json=registration_payload(1))
        test_client.post("/api/registrations", json=registration_payload(2))
        login(test_client)

        response = test_client.get("/api/admin/registrations")

        assert response.status_code == 200
        data = response.json()["data"]
        assert {r["studentId"] for r in data} == {"STU-0001", "STU-0002"}
        assert data[0]["phoneWhatsapp"] == "017801840381"

    def test_requires_session(self, client):
        assert client.get("/api/admin/registrations").status_code == 401


class TestExport:

    def test_json_export(self, admin_client, seed):
        """
        Arrange: Two registrations
        Act: Export all with the correct password
        Assert: Full, unmasked records with metadata
        """
        # Arrange
        seed(1)
        seed(2, classCategory="09-10")

        # Act
        response = admin_client.post("/api/admin/export/csv", json={"password": ADMIN_PASSWORD})

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["metadata"]["category"] == "all"
        assert body["metadata"]["count"] == 2
        assert body["metadata"]["fileName"].startswith("quiz-fest-all-registrations-")
        assert {r["phoneWhatsapp"] for r in body["records"]} == {"017801840381"}
        assert {r["email"] for r in body["records"]} == {"student1@school.edu.bd", "student2@school.edu.bd"}

    def test_category_filter(self, admin_client, seed):
        seed(1)
        seed(2, classCategory="09-10")

        response = admin_client.post(
            "/api/admin/export/csv", json={"password": ADMIN_PASSWORD, "category": "09-10"}
        )

        body = response.json()
        assert body["metadata"]["count"] == 1
        assert body["records"][0]["studentId"] == "STU-0002"

    def test_csv_export(self, admin_client, seed):
        seed(1)

        response = admin_client.post(
            "/api/admin/export/csv",
            json={"password": ADMIN_PASSWORD, "category": "06-08", "format": "csv"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="quiz-fest-class-06-08-registrations-')
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0][1] == "Registration Number"
        assert rows[1][6] == "STU-0001"
        assert rows[1][10] == "017801840381"
        assert response.headers["cache-control"] == "no-store"

    def test_wrong_password_with_valid_session(self, admin_client, seed):
        seed(1)

        response = admin_client.post("/api/admin/export/csv", json={"password": "wrong-password"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid password"}

    def test_requires_session(self, client):
        response = client.post("/api/admin/export/csv", json={"password": ADMIN_PASSWORD})

        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required"}

    def test_unknown_category(self, admin_client):
        response = admin_client.post(
            "/api/admin/export/csv", json={"password": ADMIN_PASSWORD, "category": "01-02"}
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "category"

    def test_rate_limited_after_three(self, admin_client):
        statuses = [
            admin_client.post("/api/admin/export/csv", json={"password": "wrong-password"}).status_code
            for _ in range(4)
        ]

        assert statuses == [401, 401, 401, 429]

    def test_export_audited(self, admin_client, seed, caplog):
        seed(1)
        caplog.set_level(logging.INFO, logger="quizfest.audit")

        admin_client.post("/api/admin/export/csv", json={"password": "wrong-password"})
        admin_client.post("/api/admin/export/csv", json={"password": ADMIN_PASSWORD, "category": "06-08"})

        records = [r for r in caplog.records if getattr(r, "action", None) == "registrations.export"]
        assert [r.outcome for r in records] == ["failure", "success"]
        assert records[1].category == "06-08"
        assert records[1].count == 1
        assert "wrong-password" not in caplog.text


class TestContactInbox:

    def test_lists_submissions(self, admin_client):
        admin_client.post(
            "/api/contact",
            json={
                "name": "Farhana Akter",
                "email": "farhana@example.com",
                "subject": "Venue",
                "message": "Where is the venue for the 11-12 category?",
            },
        )

        response = admin_client.get("/api/admin/contact")

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data) == 1
        assert data[0]["subject"] == "Venue"
        assert data[0]["email"] == "farhana@example.com"

    def test_requires_session(self, client):
        assert client.get("/api/admin/contact").status_code == 401
