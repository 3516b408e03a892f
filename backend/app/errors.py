"""
Service-level error kinds.

Every fallible operation of the services raises one of these classes. The
HTTP boundary (``app.main``) maps each kind to its fixed status code; anything
else is treated as an internal error.
"""

from __future__ import annotations

from typing import Any, Optional


class ServiceError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_detail(self) -> dict:
        detail = {"error": self.message, "code": self.code}
        detail.update(self.extra)
        return detail


class ValidationError(ServiceError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class Unauthorized(ServiceError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class Forbidden(ServiceError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFound(ServiceError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflict"


class AlreadyConsumed(Conflict):
    # token replays are reported as a client error, not a 409
    status_code = 400
    code = "ALREADY_CONSUMED"
    default_message = "Token already used"


class AccountExists(Conflict):
    code = "ACCOUNT_EXISTS"
    default_message = "An account with this email already exists"


class Expired(ServiceError):
    status_code = 400
    code = "EXPIRED"
    default_message = "Token expired"


class UpstreamDeliveryFailure(ServiceError):
    status_code = 502
    code = "UPSTREAM_DELIVERY_FAILURE"
    default_message = "Notification delivery failed"
