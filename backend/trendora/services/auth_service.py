# Overview: Staff accounts: registration, login, verification, password reset, profile and administration.

"""
Staff Authentication Service

Staff (admin / manager / staff) live in the users table, separate from
customers. Self-registration always yields a pending "staff" account that
becomes active when its email is verified; elevated roles are granted by an
admin (update_user) or the `flask users create` command.

Profile self-service (get_profile / update_profile) covers both identity
spaces because /api/auth/profile serves any authenticated principal.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, User
from ..models.accounts import ACCOUNT_STATUSES, STAFF_ROLES
from ..pagination import paginate
from ..validation import (
    ConflictError,
    NotFoundError,
    PHONE_RE,
    ValidationError,
    normalize_email,
)
from . import credentials, media_service, token_service
from .customer_service import update_customer_fields


def _clean_username(value) -> str:
    username = str(value or "").strip()
    if not 3 <= len(username) <= 64:
        raise ValidationError("Username must be between 3 and 64 characters")
    return username


def _clean_phone(value) -> str | None:
    phone = str(value or "").strip()
    if not phone:
        return None
    if not PHONE_RE.match(phone):
        raise ValidationError("Please provide a valid phone number")
    return phone


def _ensure_unique(*, email: str | None = None, username: str | None = None, exclude_id: int | None = None) -> None:
    if email is not None:
        q = db.session.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("User already exists")
    if username is not None:
        q = db.session.query(User.id).filter(User.username == username)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first() is not None:
            raise ConflictError("Username already taken")


def create_user(
    *,
    username,
    email,
    password,
    role: str = "staff",
    status: str = "pending",
    fullname=None,
    phone_number=None,
    avatar=None,
    email_verified: bool = False,
) -> User:
    """Build and flush a User. Does not commit or send email."""
    if role not in STAFF_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(STAFF_ROLES)}")
    if status not in ACCOUNT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ACCOUNT_STATUSES)}")

    username = _clean_username(username)
    email = normalize_email(email)
    _ensure_unique(email=email, username=username)

    user = User(
        username=username,
        email=email,
        password_hash=credentials.hash_password(password),
        role=role,
        status=status,
        fullname=(str(fullname).strip() or None) if fullname else None,
        phone_number=_clean_phone(phone_number),
        email_verified=email_verified,
    )
    if avatar:
        credentials.apply_avatar(user, avatar)

    db.session.add(user)
    db.session.flush()
    return user


def register_user(payload: dict) -> User:
    """
    Public staff sign-up. Any requested role is ignored.
    """
    user = create_user(
        username=payload.get("username"),
        email=payload.get("email"),
        password=payload.get("password"),
        fullname=payload.get("fullname"),
        phone_number=payload.get("phone_number"),
        avatar=payload.get("avatar"),
    )
    credentials.send_verification(user)
    return user


def login_user(email, password) -> tuple[User, str]:
    user = credentials.authenticate(User, email, password, allowed_roles=STAFF_ROLES)
    return user, token_service.issue_token(user)


def verify_user_email(token: str) -> User:
    return credentials.verify_email(User, token, activate=True)


def forgot_password(email) -> None:
    credentials.request_password_reset(User, email)


def reset_password(token: str, password) -> User:
    return credentials.reset_password(User, token, password)


# --- Profile (any principal) -------------------------------------------------

def update_profile(principal, payload: dict):
    """
    Self-service profile edit. Staff: fullname, phone_number, avatar.
    Customers additionally shipping_address.
    """
    if isinstance(principal, Customer):
        released = update_customer_fields(
            principal,
            payload,
            allowed={"fullname", "phone_number", "avatar", "shipping_address"},
        )
    else:
        released = _apply_user_fields(principal, payload, allowed={"fullname", "phone_number", "avatar"})

    db.session.commit()
    media_service.release_images([released] if released else [])
    return principal


def _apply_user_fields(user: User, payload: dict, *, allowed: set[str]) -> str | None:
    unknown = set(payload) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    released = None
    if "fullname" in payload:
        user.fullname = str(payload["fullname"] or "").strip() or None
    if "phone_number" in payload:
        user.phone_number = _clean_phone(payload["phone_number"])
    if "avatar" in payload:
        released = credentials.apply_avatar(user, payload["avatar"])
    if "role" in payload:
        if payload["role"] not in STAFF_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(STAFF_ROLES)}")
        user.role = payload["role"]
    if "status" in payload:
        if payload["status"] not in ACCOUNT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ACCOUNT_STATUSES)}")
        user.status = payload["status"]
    if "email" in payload:
        email = normalize_email(payload["email"])
        _ensure_unique(email=email, exclude_id=user.id)
        user.email = email
    if "username" in payload:
        username = _clean_username(payload["username"])
        _ensure_unique(username=username, exclude_id=user.id)
        user.username = username
    return released


# --- Staff administration ----------------------------------------------------

ADMIN_EDITABLE_FIELDS = {"username", "email", "role", "status", "fullname", "phone_number", "avatar"}


def list_users(*, search=None, role=None, status=None, page=None, per_page=None) -> dict:
    q = db.session.query(User)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(User.username.ilike(like), User.email.ilike(like), User.fullname.ilike(like)))
    if role:
        q = q.filter(User.role == role)
    if status:
        q = q.filter(User.status == status)
    q = q.order_by(User.date_joined.desc(), User.id.desc())
    return paginate(q, page=page, per_page=per_page, serialize=lambda u: u.to_dict())


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def update_user(user_id: int, payload: dict) -> User:
    user = get_user(user_id)
    released = _apply_user_fields(user, payload, allowed=ADMIN_EDITABLE_FIELDS)
    db.session.commit()
    media_service.release_images([released] if released else [])
    return user


def delete_user(user_id: int) -> None:
    user = get_user(user_id)
    avatar = user.avatar_public_id
    db.session.delete(user)
    db.session.commit()
    media_service.release_images([avatar] if avatar else [])
