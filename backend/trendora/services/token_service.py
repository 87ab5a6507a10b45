# Overview: Issues and verifies bearer tokens for staff users and customers.

from __future__ import annotations

from flask_jwt_extended import create_access_token, decode_token


USER_KIND = "user"
CUSTOMER_KIND = "customer"


def issue_token(principal) -> str:
    """
    Sign a bearer token for a User or Customer.

    The identity space is embedded as the "kind" claim so Access Control never
    has to probe both tables.
    """
    return create_access_token(
        identity=str(principal.id),
        additional_claims={"kind": principal.kind, "role": principal.role},
    )


def decode(token: str) -> dict:
    """
    Verify signature and expiry, returning the claims.

    Raises jwt.ExpiredSignatureError for expired tokens and
    jwt.InvalidTokenError / JWTExtendedException for everything else.
    """
    return decode_token(token)
