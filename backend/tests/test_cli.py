# Overview: Pytest coverage for the flask CLI command groups.

from trendora.extensions import db
from trendora.models import Product, StoreSettings, User


class TestSystemCommands:
    def test_init_creates_default_settings_once(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        second = runner.invoke(args=["system", "init"])

        assert first.exit_code == 0, first.output
        assert "Created default settings" in first.output
        assert "Using existing settings" in second.output
        assert db_session.query(StoreSettings).count() == 1


class TestUserCommands:
    def test_create_admin_can_log_in(self, app, client, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create",
            "--username", "root",
            "--email", "root@trendora.test",
            "--password", "secret123",
            "--role", "admin",
        ])

        assert result.exit_code == 0, result.output
        user = db.session.query(User).filter_by(username="root").one()
        assert user.role == "admin"
        assert user.status == "active"

        resp = client.post("/api/auth/login", json={"email": "root@trendora.test", "password": "secret123"})
        assert resp.status_code == 200

    def test_duplicate_user_fails(self, app, admin):
        result = app.test_cli_runner().invoke(args=[
            "users", "create",
            "--username", "someone",
            "--email", admin.email,
            "--password", "secret123",
            "--role", "staff",
        ])
        assert result.exit_code == 1
        assert "FAIL User already exists" in result.output

    def test_list(self, app, make_staff):
        make_staff("manager", username="mgr")
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert "mgr" in result.output


class TestCatalogCommands:
    def test_adjust_stock(self, app, make_product):
        p = make_product(sku="CLI-1", stock=2)
        result = app.test_cli_runner().invoke(args=["catalog", "adjust-stock", "CLI-1", "5"])

        assert result.exit_code == 0, result.output
        assert "CLI-1 stock is now 7" in result.output
        db.session.expire_all()
        assert db.session.get(Product, p["id"]).stock == 7

    def test_adjust_stock_below_zero(self, app, make_product):
        make_product(sku="CLI-2", stock=1)
        result = app.test_cli_runner().invoke(args=["catalog", "adjust-stock", "CLI-2", "--", "-3"])
        assert result.exit_code == 1
        assert result.output.startswith("FAIL")
