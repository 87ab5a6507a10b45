# backend/trendora/__init__.py
import time

from flask import Flask, g, request

from .config import Config
from .extensions import db, jwt, migrate


SENSITIVE_FIELDS = {"password", "stripe_secret_key"}


def _masked_body() -> dict | None:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None
    return {k: ("***" if k in SENSITIVE_FIELDS else v) for k, v in payload.items()}


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Model import registers every table on db.metadata before migrations run
    from . import models  # noqa: F401

    from .routes.auth import auth_bp
    from .routes.customers import customers_bp
    from .routes.dashboard import dashboard_bp
    from .routes.orders import orders_bp
    from .routes.products import products_bp
    from .routes.settings import settings_bp
    from .routes.system import system_bp

    for blueprint in (system_bp, auth_bp, customers_bp, products_bp, orders_bp, settings_bp, dashboard_bp):
        app.register_blueprint(blueprint)

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()
        # An app context pushed outside the request (CLI, tests) is reused, so g can hold a previous caller
        for key in ("current_principal", "principal_kind", "current_role"):
            g.pop(key, None)
        g.principal_label = "anonymous"
        if request.method in ("POST", "PUT", "PATCH"):
            body = _masked_body()
            if body is not None:
                app.logger.debug("%s %s body=%s", request.method, request.path, body)

    @app.after_request
    def access_log(response):
        started = g.get("request_started")
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        who = g.get("principal_label", "anonymous")
        app.logger.info(
            "%s %s %s %.1fms %s",
            request.method, request.path, response.status_code, elapsed_ms, who,
        )
        return response

    @app.after_request
    def cors(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # flask system|users|catalog ...
    from .cli import register_commands
    register_commands(app)

    return app
