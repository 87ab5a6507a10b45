# Overview: Pytest coverage for bearer-token authentication and role checks.

"""
Authorization tests.

Verifies:
- Missing, expired and invalid tokens return 401 with distinct messages
- Tokens for deleted or inactive accounts return 401
- Role allow-lists return 403
- Public catalog reads need no token
"""

import logging
from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from trendora.extensions import db

from conftest import auth_headers, headers_for


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/profile"),
            ("PUT", "/api/auth/profile"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/auth/users"),
            ("GET", "/api/customers"),
            ("GET", "/api/customers/1"),
            ("POST", "/api/products"),
            ("PUT", "/api/products/1"),
            ("DELETE", "/api/products/1"),
            ("POST", "/api/products/1/reviews"),
            ("POST", "/api/orders"),
            ("GET", "/api/orders"),
            ("DELETE", "/api/orders/1"),
            ("PUT", "/api/orders/stock/1"),
            ("GET", "/api/settings"),
            ("GET", "/api/dashboard/stats"),
            ("GET", "/api/dashboard/sales-trends"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["message"] == "Not authorized, no token provided"

    @pytest.mark.parametrize("path", ["/api/products", "/api/health"])
    def test_public_endpoints(self, client, path):
        assert client.get(path).status_code == 200


# =============================================================================
# TOKEN FAILURES (401)
# =============================================================================


class TestTokenFailures:
    def test_malformed_header(self, client):
        resp = client.get("/api/auth/profile", headers={"Authorization": "Token abc"})
        assert resp.json["message"] == "Not authorized, no token provided"

    def test_garbage_token(self, client):
        resp = client.get("/api/auth/profile", headers=auth_headers("not.a.jwt"))
        assert resp.status_code == 401
        assert resp.json["message"] == "Invalid token"

    def test_expired_token(self, client, customer):
        token = create_access_token(
            identity=str(customer.id),
            additional_claims={"kind": "customer", "role": "customer"},
            expires_delta=timedelta(seconds=-1),
        )
        resp = client.get("/api/auth/profile", headers=auth_headers(token))
        assert resp.status_code == 401
        assert resp.json["message"] == "Token expired, please log in again"

    def test_unknown_kind(self, client, customer):
        token = create_access_token(identity=str(customer.id), additional_claims={"kind": "vendor"})
        resp = client.get("/api/auth/profile", headers=auth_headers(token))
        assert resp.status_code == 401
        assert resp.json["message"] == "Invalid token"

    def test_deleted_principal(self, client, customer):
        headers = headers_for(customer)
        db.session.delete(customer)
        db.session.commit()

        resp = client.get("/api/auth/profile", headers=headers)
        assert resp.status_code == 401
        assert resp.json["message"] == "User or Customer not found"

    def test_inactive_staff(self, client, make_staff):
        headers = headers_for(make_staff("manager", status="inactive"))
        resp = client.get("/api/dashboard/stats", headers=headers)
        assert resp.status_code == 401
        assert resp.json["message"] == "Account is not active"

    def test_logout(self, client, customer_headers):
        resp = client.post("/api/auth/logout", headers=customer_headers)
        assert resp.status_code == 200


class TestAccessLog:
    def test_anonymous_request_after_detached_principal(self, client, customer, customer_headers, caplog):
        assert client.get("/api/auth/profile", headers=customer_headers).status_code == 200
        db.session.commit()
        db.session.expunge_all()

        with caplog.at_level(logging.INFO, logger="trendora"):
            resp = client.get("/api/products")

        assert resp.status_code == 200
        lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("GET /api/products ")]
        assert lines and lines[-1].endswith(" anonymous")

    def test_authenticated_request_logs_kind_and_id(self, client, customer, customer_headers, caplog):
        customer_id = customer.id
        with caplog.at_level(logging.INFO, logger="trendora"):
            client.get("/api/auth/profile", headers=customer_headers)

        lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("GET /api/auth/profile ")]
        assert lines[-1].endswith(f" customer:{customer_id}")


# =============================================================================
# ROLE CHECKS (403)
# =============================================================================


class TestRoleChecks:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/dashboard/stats"),
            ("GET", "/api/customers"),
            ("GET", "/api/auth/users"),
            ("POST", "/api/products"),
            ("GET", "/api/settings"),
            ("PUT", "/api/orders/stock/1"),
        ],
    )
    def test_customer_denied_staff_routes(self, client, customer_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=customer_headers, json={})
        assert resp.status_code == 403
        assert resp.json["message"] == "User role customer is not authorized to access this route"

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/settings"),
            ("PUT", "/api/auth/users/1"),
            ("DELETE", "/api/customers/1"),
            ("DELETE", "/api/products/1"),
            ("POST", "/api/orders"),
        ],
    )
    def test_staff_denied_admin_routes(self, client, make_staff, method, path):
        headers = headers_for(make_staff("staff"))
        resp = getattr(client, method.lower())(path, headers=headers, json={})
        assert resp.status_code == 403

    def test_manager_reads_customers(self, client, make_staff, customer):
        resp = client.get(f"/api/customers/{customer.id}", headers=headers_for(make_staff("manager")))
        assert resp.status_code == 200

    def test_staff_cannot_read_single_customer(self, client, make_staff, customer):
        resp = client.get(f"/api/customers/{customer.id}", headers=headers_for(make_staff("staff")))
        assert resp.status_code == 403
