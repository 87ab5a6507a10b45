# Overview: Staff account routes plus the shared profile endpoints under /api/auth.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..services import auth_service
from .common import json_error, page_args


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

STAFF = ("admin", "manager", "staff")
EVERYONE = ("customer", "admin", "manager", "staff")


@auth_bp.post("/register")
def register():
    """
    Staff self-registration. The account starts pending and is activated by
    the emailed verification link. Any "role" in the body is ignored.
    """
    payload = request.get_json(silent=True) or {}
    try:
        user = auth_service.register_user(payload)
    except Exception as e:
        return json_error(e, "register user")
    return {
        "message": "Registration successful. Please check your email to verify your account.",
        "user": user.to_dict(),
    }, 201


@auth_bp.post("/login")
def login():
    payload = request.get_json(silent=True) or {}
    try:
        user, token = auth_service.login_user(payload.get("email"), payload.get("password"))
    except Exception as e:
        return json_error(e, "log in user")
    return {"token": token, "user": user.to_dict()}


@auth_bp.post("/logout")
@require_auth
def logout():
    # Tokens are not tracked server-side; the client discards its copy.
    return {"message": "Logged out"}


@auth_bp.get("/verify/<token>")
def verify_email(token: str):
    try:
        auth_service.verify_user_email(token)
    except Exception as e:
        return json_error(e, "verify email")
    return {"message": "Email verified successfully"}


@auth_bp.post("/forgot-password")
def forgot_password():
    payload = request.get_json(silent=True) or {}
    try:
        auth_service.forgot_password(payload.get("email"))
    except Exception as e:
        return json_error(e, "start password reset")
    return {"message": "Password reset link sent to your email"}


@auth_bp.post("/reset-password/<token>")
def reset_password(token: str):
    payload = request.get_json(silent=True) or {}
    try:
        auth_service.reset_password(token, payload.get("password"))
    except Exception as e:
        return json_error(e, "reset password")
    return {"message": "Password reset successfully"}


@auth_bp.get("/profile")
@require_auth
@require_roles(*EVERYONE)
def get_profile():
    return {"kind": g.principal_kind, "user": g.current_principal.to_dict()}


@auth_bp.put("/profile")
@require_auth
@require_roles(*EVERYONE)
def update_profile():
    payload = request.get_json(silent=True) or {}
    try:
        principal = auth_service.update_profile(g.current_principal, payload)
    except Exception as e:
        return json_error(e, "update profile")
    return {
        "message": "Profile updated successfully",
        "kind": g.principal_kind,
        "user": principal.to_dict(),
    }


@auth_bp.get("/users")
@require_auth
@require_roles(*STAFF)
def list_users():
    try:
        result = auth_service.list_users(
            search=request.args.get("search"),
            role=request.args.get("role"),
            status=request.args.get("status"),
            **page_args(),
        )
    except Exception as e:
        return json_error(e, "list users")
    return result


@auth_bp.get("/users/<int:user_id>")
@require_auth
@require_roles(*STAFF)
def get_user(user_id: int):
    try:
        user = auth_service.get_user(user_id)
    except Exception as e:
        return json_error(e, "load user")
    return {"user": user.to_dict()}


@auth_bp.put("/users/<int:user_id>")
@require_auth
@require_roles("admin")
def update_user(user_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_user(user_id, payload)
    except Exception as e:
        return json_error(e, "update user")
    return {"user": user.to_dict()}


@auth_bp.delete("/users/<int:user_id>")
@require_auth
@require_roles("admin")
def delete_user(user_id: int):
    try:
        auth_service.delete_user(user_id)
    except Exception as e:
        return json_error(e, "delete user")
    return {"message": "User deleted"}
