# Overview: Store settings singleton routes under /api/settings (admin only).

from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..services import settings_service
from .common import json_error


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_roles("admin")
def get_settings():
    try:
        settings = settings_service.get_settings()
    except Exception as e:
        return json_error(e, "load settings")
    headers = {"Cache-Control": "no-store, no-cache, must-revalidate", "Pragma": "no-cache"}
    return settings.to_dict(), 200, headers


@settings_bp.post("")
@require_auth
@require_roles("admin")
def create_settings():
    payload = request.get_json(silent=True) or {}
    try:
        settings = settings_service.create_settings(payload)
    except Exception as e:
        return json_error(e, "create settings")
    return settings.to_dict(), 201


@settings_bp.put("")
@require_auth
@require_roles("admin")
def update_settings():
    payload = request.get_json(silent=True) or {}
    try:
        settings = settings_service.update_settings(payload)
    except Exception as e:
        return json_error(e, "update settings")
    return settings.to_dict()


@settings_bp.delete("")
@require_auth
@require_roles("admin")
def delete_settings():
    try:
        settings_service.delete_settings()
    except Exception as e:
        return json_error(e, "delete settings")
    return {"message": "Settings deleted"}
