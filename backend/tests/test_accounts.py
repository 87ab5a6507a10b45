# Overview: Pytest coverage for staff and customer sign-up, login, verification and password reset.

"""
Account Lifecycle Tests

Verification and reset tokens are captured from the mailbox fixture; only
their SHA-256 digests are ever stored.
"""

from datetime import timedelta

import pytest

from trendora.extensions import db
from trendora.models import Customer, User
from trendora.services import credentials
from trendora.time_utils import utcnow

from conftest import DEFAULT_ADDRESS, PASSWORD, auth_headers, get_auth_token, headers_for, last_token


def _customer_body(**overrides):
    body = {
        "fullname": "Ada Obi",
        "email": "Ada@Example.com",
        "phone_number": "+2348012345678",
        "password": PASSWORD,
        "shipping_address": dict(DEFAULT_ADDRESS),
    }
    body.update(overrides)
    return body


def _staff_body(**overrides):
    body = {"username": "tunde", "email": "tunde@trendora.test", "password": PASSWORD}
    body.update(overrides)
    return body


class TestCustomerSignUp:
    def test_register_sends_verification(self, client, mailbox):
        resp = client.post("/api/customers/register", json=_customer_body())

        assert resp.status_code == 201, resp.json
        assert resp.json["customer"]["email"] == "ada@example.com"
        assert resp.json["customer"]["email_verified"] is False
        assert "password_hash" not in resp.json["customer"]
        assert mailbox[-1]["type"] == "verification"
        assert mailbox[-1]["kind"] == "customer"

        stored = db.session.query(Customer).filter_by(email="ada@example.com").one()
        assert stored.verification_token_hash == credentials.hash_token(mailbox[-1]["token"])
        assert stored.password_hash != PASSWORD

    def test_duplicate_email_rejected(self, client, mailbox):
        client.post("/api/customers/register", json=_customer_body())
        resp = client.post("/api/customers/register", json=_customer_body(phone_number="+2348099999999"))
        assert resp.status_code == 400
        assert resp.json["message"] == "Customer already exists"

    def test_duplicate_phone_rejected(self, client, mailbox):
        client.post("/api/customers/register", json=_customer_body())
        resp = client.post("/api/customers/register", json=_customer_body(email="other@example.com"))
        assert resp.status_code == 400
        assert resp.json["message"] == "Phone number already registered"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "not-an-email"},
            {"password": "123"},
            {"phone_number": "12"},
            {"fullname": ""},
            {"shipping_address": {"street": "1 Road"}},
        ],
    )
    def test_invalid_registration(self, client, mailbox, overrides):
        resp = client.post("/api/customers/register", json=_customer_body(**overrides))
        assert resp.status_code == 400
        assert mailbox == []

    def test_login_requires_verified_email(self, client, mailbox):
        client.post("/api/customers/register", json=_customer_body())

        blocked = client.post("/api/customers/login", json={"email": "ada@example.com", "password": PASSWORD})
        assert blocked.status_code == 401
        assert blocked.json["message"] == "Please verify your email first"

        verified = client.get(f"/api/customers/verify/{last_token(mailbox, 'verification')}")
        assert verified.status_code == 200

        token = get_auth_token(client, "/api/customers/login", "ada@example.com")
        assert token is not None
        profile = client.get("/api/auth/profile", headers=auth_headers(token))
        assert profile.json["kind"] == "customer"
        assert profile.json["user"]["email_verified"] is True

    def test_verification_token_single_use(self, client, mailbox):
        client.post("/api/customers/register", json=_customer_body())
        token = last_token(mailbox, "verification")

        assert client.get(f"/api/customers/verify/{token}").status_code == 200
        again = client.get(f"/api/customers/verify/{token}")
        assert again.status_code == 400
        assert again.json["message"] == "Invalid or expired token"

    def test_expired_verification_token(self, client, mailbox):
        client.post("/api/customers/register", json=_customer_body())
        token = last_token(mailbox, "verification")
        stored = db.session.query(Customer).filter_by(email="ada@example.com").one()
        stored.verification_expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        assert client.get(f"/api/customers/verify/{token}").status_code == 400

    def test_wrong_password(self, client, customer):
        resp = client.post("/api/customers/login", json={"email": customer.email, "password": "wrong-one"})
        assert resp.status_code == 401
        assert resp.json["message"] == "Invalid credentials"

    def test_suspended_customer_cannot_login(self, client, make_customer):
        c = make_customer(status="suspended")
        resp = client.post("/api/customers/login", json={"email": c.email, "password": PASSWORD})
        assert resp.status_code == 401
        assert resp.json["message"] == "Account is not active"

    def test_login_stamps_last_login(self, client, customer):
        assert get_auth_token(client, "/api/customers/login", customer.email) is not None
        db.session.expire_all()
        assert db.session.get(Customer, customer.id).last_login_at is not None


class TestPasswordReset:
    def test_reset_flow(self, client, customer, mailbox):
        resp = client.post("/api/customers/forgot-password", json={"email": customer.email})
        assert resp.status_code == 200
        token = last_token(mailbox, "reset")

        done = client.post(f"/api/customers/reset-password/{token}", json={"password": "brand-new-pass"})
        assert done.status_code == 200

        assert get_auth_token(client, "/api/customers/login", customer.email) is None
        assert get_auth_token(client, "/api/customers/login", customer.email, "brand-new-pass") is not None

        reused = client.post(f"/api/customers/reset-password/{token}", json={"password": "another-pass"})
        assert reused.status_code == 400

    def test_expired_reset_token(self, client, customer, mailbox):
        client.post("/api/customers/forgot-password", json={"email": customer.email})
        token = last_token(mailbox, "reset")
        customer.reset_expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        resp = client.post(f"/api/customers/reset-password/{token}", json={"password": "brand-new-pass"})
        assert resp.status_code == 400
        assert get_auth_token(client, "/api/customers/login", customer.email) is not None

    def test_short_new_password_keeps_token(self, client, customer, mailbox):
        client.post("/api/customers/forgot-password", json={"email": customer.email})
        token = last_token(mailbox, "reset")

        short = client.post(f"/api/customers/reset-password/{token}", json={"password": "123"})
        ok = client.post(f"/api/customers/reset-password/{token}", json={"password": "long-enough"})

        assert short.status_code == 400
        assert ok.status_code == 200

    def test_unknown_email(self, client, db_session, mailbox):
        resp = client.post("/api/customers/forgot-password", json={"email": "ghost@example.com"})
        assert resp.status_code == 404
        assert mailbox == []

    def test_staff_reset_link_kind(self, client, admin, mailbox):
        client.post("/api/auth/forgot-password", json={"email": admin.email})
        assert mailbox[-1]["kind"] == "user"


class TestStaffAccounts:
    def test_register_is_pending_staff(self, client, mailbox):
        resp = client.post("/api/auth/register", json=_staff_body(role="admin"))

        assert resp.status_code == 201, resp.json
        assert resp.json["user"]["role"] == "staff"
        assert resp.json["user"]["status"] == "pending"
        assert "token" not in resp.json

    def test_verify_activates_account(self, client, mailbox):
        client.post("/api/auth/register", json=_staff_body())

        blocked = client.post("/api/auth/login", json={"email": "tunde@trendora.test", "password": PASSWORD})
        assert blocked.status_code == 401

        client.get(f"/api/auth/verify/{last_token(mailbox, 'verification')}")
        db.session.expire_all()
        user = db.session.query(User).filter_by(email="tunde@trendora.test").one()
        assert user.status == "active"
        assert user.email_verified is True

        token = get_auth_token(client, "/api/auth/login", "tunde@trendora.test")
        assert token is not None

    def test_duplicate_email(self, client, mailbox):
        client.post("/api/auth/register", json=_staff_body())
        resp = client.post("/api/auth/register", json=_staff_body(username="tunde2", email="TUNDE@trendora.test"))
        assert resp.status_code == 400
        assert resp.json["message"] == "User already exists"

    def test_duplicate_username(self, client, mailbox):
        client.post("/api/auth/register", json=_staff_body())
        resp = client.post("/api/auth/register", json=_staff_body(email="second@trendora.test"))
        assert resp.status_code == 400
        assert resp.json["message"] == "Username already taken"

    def test_customer_cannot_use_staff_login(self, client, customer):
        resp = client.post("/api/auth/login", json={"email": customer.email, "password": PASSWORD})
        assert resp.status_code == 401

    def test_profile_update(self, client, make_staff):
        user = make_staff("manager")
        resp = client.put("/api/auth/profile", json={"fullname": "Bola Ade"}, headers=headers_for(user))
        assert resp.status_code == 200
        assert resp.json["kind"] == "user"
        assert resp.json["user"]["fullname"] == "Bola Ade"

    def test_profile_cannot_escalate_role(self, client, make_staff):
        user = make_staff("staff")
        resp = client.put("/api/auth/profile", json={"role": "admin"}, headers=headers_for(user))
        assert resp.status_code == 400

    def test_customer_profile_address(self, client, customer, customer_headers):
        address = dict(DEFAULT_ADDRESS, city="Yaba")
        resp = client.put("/api/auth/profile", json={"shipping_address": address}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["shipping_address"]["city"] == "Yaba"

    def test_admin_manages_users(self, client, admin_headers, make_staff):
        target = make_staff("staff")

        listed = client.get("/api/auth/users?role=staff", headers=admin_headers)
        assert [u["id"] for u in listed.json["items"]] == [target.id]

        promoted = client.put(f"/api/auth/users/{target.id}", json={"role": "manager"}, headers=admin_headers)
        assert promoted.json["user"]["role"] == "manager"

        assert client.delete(f"/api/auth/users/{target.id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/auth/users/{target.id}", headers=admin_headers).status_code == 404


class TestCustomerAdministration:
    def test_staff_creates_customer(self, client, make_staff, mailbox):
        resp = client.post("/api/customers", json=_customer_body(), headers=headers_for(make_staff("staff")))
        assert resp.status_code == 201
        assert mailbox[-1]["kind"] == "customer"

    def test_customer_reads_only_self(self, client, customer, customer_headers, make_customer):
        other = make_customer()
        assert client.get(f"/api/customers/{customer.id}", headers=customer_headers).status_code == 200
        assert client.get(f"/api/customers/{other.id}", headers=customer_headers).status_code == 403

    def test_customer_cannot_change_own_status(self, client, customer, customer_headers):
        resp = client.put(f"/api/customers/{customer.id}", json={"status": "active"}, headers=customer_headers)
        assert resp.status_code == 400

    def test_admin_suspends_customer(self, client, customer, customer_headers, admin_headers):
        resp = client.put(f"/api/customers/{customer.id}", json={"status": "suspended"}, headers=admin_headers)
        assert resp.status_code == 200

        denied = client.get("/api/auth/profile", headers=customer_headers)
        assert denied.status_code == 401
        assert denied.json["message"] == "Account is not active"

    def test_delete_customer_with_orders_rejected(self, client, customer, customer_headers, admin_headers, make_product):
        p = make_product()
        client.post(
            "/api/orders",
            json={"items": [{"product_id": p["id"], "quantity": 1}], "payment_method": "Card"},
            headers=customer_headers,
        )
        resp = client.delete(f"/api/customers/{customer.id}", headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_customer_recomputes_ratings(self, client, customer, customer_headers, admin_headers, make_customer, make_product):
        p = make_product()
        client.post(f"/api/products/{p['id']}/reviews", json={"rating": 1}, headers=customer_headers)
        client.post(f"/api/products/{p['id']}/reviews", json={"rating": 5}, headers=headers_for(make_customer()))

        resp = client.delete(f"/api/customers/{customer.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert client.get(f"/api/products/{p['id']}").json["ratings"] == {"average": 5.0, "count": 1}
