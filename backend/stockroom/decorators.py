# Overview: Request decorators establishing identity and tenant context for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import NotFoundError, ServiceError, UnauthenticatedError
from .services import auth_service, tenant_service


def _bearer_token() -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthenticatedError("Authentication required")
    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise UnauthenticatedError("Authentication required")
    return token


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.user_id. Returns 401 for a missing, tampered or expired token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.user_id = auth_service.verify_token(_bearer_token())
        except UnauthenticatedError as e:
            return jsonify(e.to_dict()), e.status_code
        return f(*args, **kwargs)

    return decorated_function


def require_company(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Resolves the caller's company once per request and sets:
    - g.user_id: the authenticated user
    - g.company_id: the tenant every query in the handler is scoped to
    - g.company_role: admin / manager / staff

    Returns 404 when the user is not linked to a company.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.user_id = auth_service.verify_token(_bearer_token())
            membership = tenant_service.get_membership(g.user_id)
            if membership is None:
                raise NotFoundError("user not associated with any company")
        except ServiceError as e:
            return jsonify(e.to_dict()), e.status_code

        g.company_id = membership.company_id
        g.company_role = membership.role
        return f(*args, **kwargs)

    return decorated_function
