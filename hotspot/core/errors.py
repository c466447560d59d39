"""
Domain errors. Each carries the HTTP status the API layer renders it with;
the exception handler in hotspot.main turns them into JSON responses.
"""
from typing import Any


class HotspotError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "", detail: dict[str, Any] | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.detail = detail or {}


class ValidationError(HotspotError):
    """Bad plan, amount, reference or request body."""
    status_code = 400
    code = "validation_error"


class AuthError(HotspotError):
    """Bad webhook signature, router key or admin key."""
    status_code = 403
    code = "auth_error"

    def __init__(self, message: str = "", status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class DuplicateReference(HotspotError):
    status_code = 409
    code = "duplicate_reference"


class UsernameCollision(HotspotError):
    status_code = 503
    code = "username_collision"


class ReferenceCollision(HotspotError):
    """Intake could not find a free reference within its retry budget."""
    status_code = 503
    code = "reference_collision"


class JobNotFound(HotspotError):
    status_code = 404
    code = "not_found"


class WrongState(HotspotError):
    status_code = 409
    code = "wrong_state"

    def __init__(self, current: str, target: str):
        super().__init__(f"cannot move job from {current} to {target}")
        self.current = current
        self.target = target


class GatewayError(HotspotError):
    """Outbound call to the payment gateway failed or timed out."""
    status_code = 502
    code = "gateway_error"


class StoreError(HotspotError):
    """Connection loss, rollback or any other database failure."""
    status_code = 503
    code = "store_unavailable"
