"""Resolve the caller's owner id from the Authorization header.

Two modes share one contract: a verified owner id string, or ``Unauthorized``.

``token``
    Session tokens issued by this service at login/register, signed with
    ``SECRET_KEY`` and carrying an issue time checked against
    ``TOKEN_MAX_AGE_SECONDS``.
``delegated``
    Tokens issued by an external identity authority that shares
    ``IDENTITY_AUTHORITY_SECRET`` with this service.  The subject is read
    from ``user_id`` or ``sub`` only after the signature checks out.
"""
from __future__ import annotations

from typing import Mapping

from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer

from .errors import Unauthorized

SESSION_SALT = "glasshabit-session"
AUTHORITY_SALT = "glasshabit-identity"


def _serializer(config: Mapping) -> URLSafeTimedSerializer:
    if config["AUTH_MODE"] == "delegated":
        secret = config.get("IDENTITY_AUTHORITY_SECRET")
        if not secret:
            raise Unauthorized("Identity authority is not configured")
        return URLSafeTimedSerializer(secret, salt=AUTHORITY_SALT)
    return URLSafeTimedSerializer(config["SECRET_KEY"], salt=SESSION_SALT)


def issue_token(owner_id: str, config: Mapping) -> str:
    return _serializer(config).dumps({"sub": owner_id})


def bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise Unauthorized("Unauthorized")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Malformed Authorization header")
    return token.strip()


def resolve_owner(authorization: str | None, config: Mapping) -> str:
    token = bearer_token(authorization)
    try:
        claims = _serializer(config).loads(token, max_age=config["TOKEN_MAX_AGE_SECONDS"])
    except SignatureExpired:
        raise Unauthorized("Session expired. Please login again.") from None
    except BadData:
        raise Unauthorized("Invalid token") from None

    owner_id = None
    if isinstance(claims, dict):
        owner_id = claims.get("user_id") or claims.get("sub")
    if not isinstance(owner_id, str) or not owner_id:
        raise Unauthorized("Token has no subject")
    return owner_id
