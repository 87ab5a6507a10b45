# Overview: Password hashing and one-time email token helpers shared by both account kinds.

"""
Credential primitives.

- Passwords are hashed with bcrypt; the work factor comes from
  BCRYPT_LOG_ROUNDS so tests can run at the minimum cost.
- Verification and reset tokens are 32 random bytes (hex). Only the SHA-256
  digest is persisted; the plaintext travels in the email link.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

import bcrypt
from flask import current_app

from ..extensions import db
from ..validation import NotFoundError, ValidationError, normalize_email
from . import media_service, notification_service
from trendora.time_utils import expires_in, is_past, utcnow


MIN_PASSWORD_LENGTH = 6
VERIFICATION_TOKEN_TTL = timedelta(hours=24)
RESET_TOKEN_TTL = timedelta(hours=1)


class PasswordValidationError(ValueError):
    """Raised when a password doesn't meet requirements."""
    pass


class AuthenticationError(Exception):
    """Bad credentials, unverified email, inactive account or invalid token (401)."""
    pass


def validate_password(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """Validate then hash. Returns the bcrypt hash as text for storage."""
    validate_password(password)
    rounds = int(current_app.config.get("BCRYPT_LOG_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_verification_token(account) -> str:
    """Stamp a fresh verification token on the account; returns the plaintext."""
    token = generate_token()
    account.verification_token_hash = hash_token(token)
    account.verification_expires_at = expires_in(VERIFICATION_TOKEN_TTL)
    return token


def issue_reset_token(account) -> str:
    token = generate_token()
    account.reset_token_hash = hash_token(token)
    account.reset_expires_at = expires_in(RESET_TOKEN_TTL)
    return token


def find_by_token(model, token: str, *, kind: str):
    """
    Look up an account by a plaintext one-time token.

    kind is "verification" or "reset". Returns None when the token is unknown
    or expired.
    """
    if not token:
        return None
    hash_col = getattr(model, f"{kind}_token_hash")
    account = db.session.query(model).filter(hash_col == hash_token(token)).first()
    if account is None:
        return None
    if is_past(getattr(account, f"{kind}_expires_at")):
        return None
    return account


def clear_verification_token(account) -> None:
    account.verification_token_hash = None
    account.verification_expires_at = None


def clear_reset_token(account) -> None:
    account.reset_token_hash = None
    account.reset_expires_at = None


# --- Flows shared by staff users and customers -------------------------------
# `model` is User or Customer; both carry the AccountMixin columns.


def authenticate(model, email, password, *, allowed_roles):
    """
    Credential match, then verified-email, status and role gates.

    Raises AuthenticationError with a message specific to the failing gate.
    """
    try:
        email = normalize_email(email)
    except ValidationError:
        raise AuthenticationError("Invalid credentials")

    account = db.session.query(model).filter_by(email=email).first()
    if account is None or not verify_password(password or "", account.password_hash):
        raise AuthenticationError("Invalid credentials")
    if not account.email_verified:
        raise AuthenticationError("Please verify your email first")
    if not account.is_active:
        raise AuthenticationError("Account is not active")
    if account.role not in allowed_roles:
        raise AuthenticationError(f"Role {account.role} cannot sign in here")

    account.last_login_at = utcnow()
    db.session.commit()
    return account


def verify_email(model, token: str, *, activate: bool = False):
    """Consume a verification token. Single use."""
    account = find_by_token(model, token, kind="verification")
    if account is None:
        raise ValidationError("Invalid or expired token")

    account.email_verified = True
    clear_verification_token(account)
    if activate and account.status == "pending":
        account.status = "active"
    db.session.commit()
    return account


def request_password_reset(model, email) -> None:
    account = db.session.query(model).filter_by(email=normalize_email(email)).first()
    if account is None:
        raise NotFoundError(f"{model.__name__} not found")

    token = issue_reset_token(account)
    db.session.commit()
    notification_service.send_password_reset_email(account, token, kind=model.kind)


def reset_password(model, token: str, password: str):
    """Consume a reset token and set the new password. Single use."""
    account = find_by_token(model, token, kind="reset")
    if account is None:
        raise ValidationError("Invalid or expired token")

    account.password_hash = hash_password(password)
    clear_reset_token(account)
    db.session.commit()
    return account


def send_verification(account) -> None:
    """Issue a fresh verification token, commit, then email it."""
    token = issue_verification_token(account)
    db.session.commit()
    notification_service.send_verification_email(account, token, kind=account.kind)


def apply_avatar(account, avatar) -> str | None:
    """
    Set or clear the avatar from a hosted image URL.

    Returns the public id of the replaced avatar (to release after commit).
    """
    previous = account.avatar_public_id
    if avatar in (None, ""):
        account.avatar_public_id = None
        account.avatar_url = None
    else:
        ref = media_service.image_ref(avatar)
        account.avatar_public_id = ref["public_id"]
        account.avatar_url = ref["url"]
    return previous if previous and previous != account.avatar_public_id else None
