# Overview: Request authentication and role decorators for API routes.

from functools import wraps

import jwt
from flask import current_app, g, jsonify, request
from flask_jwt_extended.exceptions import JWTExtendedException

from .extensions import db
from .models import Customer, User
from .services import token_service


PRINCIPAL_MODELS = {
    token_service.USER_KIND: User,
    token_service.CUSTOMER_KIND: Customer,
}


def _deny(status: int, message: str):
    current_app.logger.info("Access denied (%s) %s %s: %s", status, request.method, request.path, message)
    return jsonify({"message": message}), status


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid bearer token and resolve its principal.

    Sets:
    - g.current_principal: the User or Customer row
    - g.principal_kind: "user" or "customer" (from the token's kind claim)
    - g.current_role: admin / manager / staff / customer
    - g.principal_label: "kind:id" for the access log

    Returns 401 for a missing, expired or invalid token, an unknown principal,
    or an account that is not active.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return _deny(401, "Not authorized, no token provided")

        try:
            claims = token_service.decode(token)
        except jwt.ExpiredSignatureError:
            return _deny(401, "Token expired, please log in again")
        except (jwt.InvalidTokenError, JWTExtendedException):
            return _deny(401, "Invalid token")

        model = PRINCIPAL_MODELS.get(claims.get("kind"))
        try:
            principal_id = int(claims.get("sub"))
        except (TypeError, ValueError):
            return _deny(401, "Invalid token")
        if model is None:
            return _deny(401, "Invalid token")

        principal = db.session.get(model, principal_id)
        if principal is None:
            return _deny(401, "User or Customer not found")
        if not principal.is_active:
            return _deny(401, "Account is not active")

        g.current_principal = principal
        g.principal_kind = principal.kind
        g.current_role = principal.role
        g.principal_label = f"{principal.kind}:{principal.id}"

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles: str):
    """
    Allow-list of roles for a route. Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            role = getattr(g, "current_role", None)
            if role is None:
                return _deny(401, "Not authorized, no token provided")
            if role not in roles:
                return _deny(403, f"User role {role} is not authorized to access this route")
            return f(*args, **kwargs)

        return decorated_function

    return decorator
