"""
Integration tests for the middleware stack: security headers, request
context, request logging and origin monitoring.
"""

import logging
import uuid

import pytest
from fastapi import Request
from starlette.routing import Route

from conftest import ADMIN_PASSWORD, ADMIN_USERNAME, login
from quizfest.middleware.logging import route_template

pytestmark = pytest.mark.integration


class TestSecurityHeaders:

    def test_headers_present(self, client):
        response = client.get("/api/health")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert "frame-ancestors 'none'" in response.headers["content-security-policy"]
        assert "https://fonts.googleapis.com" in response.headers["content-security-policy"]
        assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"
        assert "camera=()" in response.headers["permissions-policy"]
        assert response.headers["cache-control"] == "no-store"

    def test_no_hsts_outside_production(self, client):
        assert "strict-transport-security" not in client.get("/api/health").headers

    def test_hsts_in_production(self, make_client):
        production_client = make_client(environment="production")

        response = production_client.get("/api/health")

        assert response.headers["strict-transport-security"].startswith("max-age=31536000")

    def test_headers_on_error_responses(self, client):
        response = client.get("/api/admin/me")

        assert response.status_code == 401
        assert response.headers["x-frame-options"] == "DENY"

    def test_headers_on_rate_limited_responses(self, client):
        for _ in range(5):
            login(client, password="wrong-password")

        response = login(client, password="wrong-password")

        assert response.status_code == 429
        assert response.headers["x-content-type-options"] == "nosniff"
        assert "x-request-id" in response.headers

    def test_docs_disabled_in_production(self, make_client):
        assert make_client(environment="production").get("/docs").status_code == 404


class TestRequestContext:

    def test_generates_request_id(self, client):
        request_id = client.get("/api/health").headers["x-request-id"]

        assert uuid.UUID(request_id)

    def test_echoes_valid_request_id(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "desk-7.req_42"})

        assert response.headers["x-request-id"] == "desk-7.req_42"

    def test_replaces_unsafe_request_id(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "bad id; drop table"})

        assert response.headers["x-request-id"] != "bad id; drop table"
        assert uuid.UUID(response.headers["x-request-id"])


class TestRequestLogging:

    def test_logs_route_template_not_path(self, client, caplog):
        """
        Arrange: Logged-in admin
        Act: Search for a term
        Assert: The request log names the route template; the term is nowhere in the logs
        """
        # Arrange
        login(client)
        caplog.set_level(logging.INFO, logger="quizfest")

        # Act
        client.get("/api/admin/registrations/search/STU-SECRET-99")

        # Assert
        completed = [r for r in caplog.records if r.getMessage() == "Request completed"]
        assert completed[-1].route == "/api/admin/registrations/search/{term}"
        assert completed[-1].status_code == 404
        assert completed[-1].method == "GET"
        assert completed[-1].latency_ms >= 0
        for record in caplog.records:
            assert all("STU-SECRET-99" not in str(value) for value in record.__dict__.values())

    def test_request_id_matches_header(self, client, caplog):
        caplog.set_level(logging.INFO, logger="quizfest")

        response = client.get("/api/health")

        completed = [r for r in caplog.records if r.getMessage() == "Request completed"]
        assert completed[-1].request_id == response.headers["x-request-id"]
        assert completed[-1].client_ip == "testclient"

    def test_unmatched_route(self, client, caplog):
        caplog.set_level(logging.INFO, logger="quizfest")

        client.get("/api/does-not-exist/secret-path")

        completed = [r for r in caplog.records if r.getMessage() == "Request completed"]
        assert completed[-1].route == "unmatched"
        assert completed[-1].status_code == 404

    def test_route_template_with_custom_prefix(self, make_client, caplog):
        test_client = make_client(api_prefix="/v2")
        caplog.set_level(logging.INFO, logger="quizfest")

        test_client.get("/v2/health/ready")

        completed = [r for r in caplog.records if r.getMessage() == "Request completed"]
        assert completed[-1].route == "/v2/health/ready"
        assert completed[-1].status_code == 200


class TestRouteTemplate:
    """route_template() against both shapes of matched route."""

    @staticmethod
    def _request(path, route=None):
        scope = {"type": "http", "method": "GET", "path": path, "headers": []}
        if route is not None:
            scope["route"] = route
        return Request(scope)

    def test_router_relative_route_gets_prefix(self):
        route = Route("/admin/registrations/search/{term}", endpoint=lambda request: None)
        request = self._request("/api/admin/registrations/search/STU-1", route)

        assert route_template(request, "/api") == "/api/admin/registrations/search/{term}"

    def test_full_route_left_alone(self):
        route = Route("/api/admin/registrations/search/{term}", endpoint=lambda request: None)
        request = self._request("/api/admin/registrations/search/STU-1", route)

        assert route_template(request, "/api") == "/api/admin/registrations/search/{term}"

    def test_no_prefix_configured(self):
        route = Route("/health", endpoint=lambda request: None)

        assert route_template(self._request("/health", route), "") == "/health"

    def test_no_route(self):
        assert route_template(self._request("/api/nope"), "/api") == "unmatched"


class TestClientAddress:

    @staticmethod
    def _logged_client_ip(test_client, caplog, forwarded):
        caplog.set_level(logging.INFO, logger="quizfest")
        test_client.get("/api/health", headers={"X-Forwarded-For": forwarded})
        completed = [r for r in caplog.records if r.getMessage() == "Request completed"]
        return completed[-1].client_ip

    def test_forwarded_header_ignored_by_default(self, client, caplog):
        assert self._logged_client_ip(client, caplog, "203.0.113.7") == "testclient"

    def test_rightmost_entry_with_one_proxy(self, make_client, caplog):
        test_client = make_client(trusted_proxy_count=1)

        client_ip = self._logged_client_ip(test_client, caplog, "10.0.0.1, 203.0.113.7")

        assert client_ip == "203.0.113.7"

    def test_entry_skips_trusted_hops(self, make_client, caplog):
        test_client = make_client(trusted_proxy_count=2)

        client_ip = self._logged_client_ip(
            test_client, caplog, "10.0.0.1, 203.0.113.7 , 192.0.2.10"
        )

        assert client_ip == "203.0.113.7"

    def test_short_header_falls_back_to_peer(self, make_client, caplog):
        test_client = make_client(trusted_proxy_count=2)

        assert self._logged_client_ip(test_client, caplog, "203.0.113.7") == "testclient"


class TestOriginCheck:

    WARNING = "Admin request with missing or mismatched origin"

    def test_missing_origin_logged(self, client, caplog):
        caplog.set_level(logging.INFO, logger="quizfest")

        login(client)

        assert any(r.getMessage() == self.WARNING for r in caplog.records)

    def test_cross_site_origin_logged(self, client, caplog):
        caplog.set_level(logging.INFO, logger="quizfest")

        client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
            headers={"Origin": "https://evil.example"},
        )

        assert any(r.getMessage() == self.WARNING for r in caplog.records)

    def test_same_host_origin_not_logged(self, client, caplog):
        caplog.set_level(logging.INFO, logger="quizfest")

        response = client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
            headers={"Origin": "http://testserver"},
        )

        assert response.status_code == 200
        assert not any(r.getMessage() == self.WARNING for r in caplog.records)

    def test_allowed_origin_not_logged(self, client, caplog):
        caplog.set_level(logging.INFO, logger="quizfest")

        client.post(
            "/api/admin/logout",
            headers={"Referer": "http://localhost:5000/admin"},
        )

        assert not any(r.getMessage() == self.WARNING for r in caplog.records)

    def test_requests_never_blocked(self, client):
        response = client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
            headers={"Origin": "https://evil.example"},
        )

        assert response.status_code == 200
