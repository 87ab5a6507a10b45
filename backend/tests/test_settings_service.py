# Overview: Pytest coverage for the store settings singleton.

import pytest

from trendora.models import StoreSettings
from trendora.models.settings import MASKED_SECRET
from trendora.services import settings_service
from trendora.validation import ConflictError, NotFoundError


def _settings_body(**overrides):
    body = {
        "store_name": "Trendora Lagos",
        "store_email": "Hello@Trendora.test",
        "store_contact": "+2348011111111",
        "store_address": {
            "street": "5 Broad Street",
            "city": "Lagos Island",
            "state": "Lagos",
            "zip_code": "101001",
            "country": "Nigeria",
        },
        "stripe_enabled": True,
        "stripe_publishable_key": "pk_test_123",
        "stripe_secret_key": "sk_test_456",
        "tax_enabled": True,
        "tax_rate": 7.5,
    }
    body.update(overrides)
    return body


class TestSettingsService:
    def test_get_before_create(self, db_session):
        with pytest.raises(NotFoundError):
            settings_service.get_settings()

    def test_create_then_conflict(self, db_session):
        created = settings_service.create_settings(_settings_body())
        assert created.id == 1
        assert created.store_email == "hello@trendora.test"

        with pytest.raises(ConflictError):
            settings_service.create_settings(_settings_body(store_name="Second Store"))
        assert db_session.query(StoreSettings).count() == 1

    def test_update_requires_existing(self, db_session):
        with pytest.raises(NotFoundError):
            settings_service.update_settings({"store_name": "Nope"})

    def test_masked_secret_is_ignored_on_update(self, db_session):
        settings_service.create_settings(_settings_body())
        updated = settings_service.update_settings({"stripe_secret_key": MASKED_SECRET, "tax_rate": 5})
        assert updated.stripe_secret_key == "sk_test_456"
        assert updated.tax_rate == 5.0

    def test_ensure_default_settings_is_idempotent(self, db_session):
        first, created = settings_service.ensure_default_settings()
        second, created_again = settings_service.ensure_default_settings()
        assert created is True
        assert created_again is False
        assert first.id == second.id == 1


class TestSettingsRoutes:
    def test_create_and_read_masks_secret(self, client, admin_headers):
        resp = client.post("/api/settings", json=_settings_body(), headers=admin_headers)
        assert resp.status_code == 201, resp.json

        read = client.get("/api/settings", headers=admin_headers)
        assert read.status_code == 200
        assert "no-store" in read.headers["Cache-Control"]
        stripe = read.json["payment_gateways"]["stripe"]
        assert stripe["secret_key"] == MASKED_SECRET
        assert stripe["publishable_key"] == "pk_test_123"
        assert "sk_test_456" not in read.get_data(as_text=True)

    def test_second_create_rejected(self, client, admin_headers):
        client.post("/api/settings", json=_settings_body(), headers=admin_headers)
        resp = client.post("/api/settings", json=_settings_body(), headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["message"] == "Settings already exist. Use the update endpoint to modify."

    def test_update_before_create(self, client, admin_headers):
        resp = client.put("/api/settings", json={"store_name": "Trendora"}, headers=admin_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "overrides",
        [
            {"store_name": "ab"},
            {"store_contact": "call-me"},
            {"default_currency": "BTC"},
            {"tax_rate": 150},
            {"images_per_product": 0},
            {"social_links": {"myspace": "x"}},
            {"unknown_field": True},
        ],
    )
    def test_invalid_settings(self, client, admin_headers, overrides):
        resp = client.post("/api/settings", json=_settings_body(**overrides), headers=admin_headers)
        assert resp.status_code == 400

    def test_missing_required(self, client, admin_headers):
        resp = client.post("/api/settings", json={"store_name": "Trendora"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_delete(self, client, admin_headers):
        client.post("/api/settings", json=_settings_body(), headers=admin_headers)
        assert client.delete("/api/settings", headers=admin_headers).status_code == 200
        assert client.get("/api/settings", headers=admin_headers).status_code == 404
