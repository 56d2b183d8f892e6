# Overview: Domain error taxonomy shared by services and routes.

"""
Every service raises one of these; the application error handler renders
them as {"error": message, "code": kind} with the matching HTTP status.

Tenant isolation: lookups of rows owned by another company raise NotFoundError,
never a permission error, so existence is not leaked across tenants.
"""


class ServiceError(Exception):
    """Base class for errors that map to a client-visible response."""
    status_code = 500
    code = "internal"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class AlreadyExistsError(ServiceError):
    status_code = 409
    code = "already_exists"


class InvalidArgumentError(ServiceError):
    status_code = 400
    code = "invalid_argument"


class FailedPreconditionError(ServiceError):
    status_code = 409
    code = "failed_precondition"


class InternalError(ServiceError):
    status_code = 500
    code = "internal"


class UnauthenticatedError(ServiceError):
    status_code = 401
    code = "unauthenticated"
