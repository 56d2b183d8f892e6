# Overview: Service-layer operations for auth; issues and verifies bearer tokens.

"""
Bearer Token Service

Identity is owned by an external provider; this service only needs to know
which user_id a request speaks for. Tokens are user ids signed with the app
SECRET_KEY (itsdangerous, timestamped), so verification needs no database
round trip and tokens expire after AUTH_TOKEN_MAX_AGE seconds.

Company membership is NOT encoded in the token. It is resolved per request
from company_users (see decorators.require_company) so a user who creates a
company can use the same token immediately.
"""

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..errors import UnauthenticatedError

TOKEN_SALT = "stockroom-auth"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user_id: str) -> str:
    """Sign a user id into a bearer token."""
    if not user_id or not str(user_id).strip():
        raise ValueError("user_id is required")
    return _serializer().dumps({"sub": str(user_id).strip()})


def verify_token(token: str) -> str:
    """
    Return the user id carried by a token.

    Raises UnauthenticatedError for malformed, tampered or expired tokens.
    """
    max_age = current_app.config.get("AUTH_TOKEN_MAX_AGE", 86400)
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        raise UnauthenticatedError("Token expired")
    except BadSignature:
        raise UnauthenticatedError("Invalid token")

    user_id = payload.get("sub") if isinstance(payload, dict) else None
    if not user_id:
        raise UnauthenticatedError("Invalid token")
    return user_id
