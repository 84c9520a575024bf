from __future__ import annotations
from typing import Any, Dict, Optional
from consent_authz.core.correlation import get_correlation_id

# Map our short codes → human messages (expand as needed)
_MESSAGES = {
    "not_found": "The requested resource was not found.",
    "validation_error": "One or more fields failed validation.",
    "unknown_value": "The value is not one of the accepted values.",
    "unknown_status": "The consent status is not recognised.",
    "invalid_state": "The resource is not in a valid state for this operation.",
    "consent_invalid": "The consent is invalid or expired.",
    "service_unavailable": "A backing service is temporarily unavailable.",
    "lock_unavailable": "The consent is busy; retry the request.",
    "operation_failed": "The backend could not complete the operation.",
    "server_error": "An unexpected error occurred.",
}


class ConsentError(Exception):
    """Base for every error this package raises on purpose."""

    code = "server_error"
    http_status = 500
    retryable = False

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or _MESSAGES.get(self.code, self.code)
        super().__init__(self.message)


class ConsentNotFoundError(ConsentError):
    code = "not_found"
    http_status = 404

    def __init__(self, consent_id: Any) -> None:
        self.consent_id = consent_id
        super().__init__(f"Consent not found with ID: {consent_id}")


class AccessLogNotFoundError(ConsentError):
    code = "not_found"
    http_status = 404

    def __init__(self, log_id: Any) -> None:
        self.log_id = log_id
        super().__init__(f"Access log not found with ID: {log_id}")


class ConsentValidationError(ConsentError):
    code = "validation_error"
    http_status = 422


class UnknownValueError(ConsentValidationError):
    code = "unknown_value"

    def __init__(self, kind: str, value: Any) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"Unknown {kind}: {value!r}")


class UnknownStatusError(UnknownValueError):
    code = "unknown_status"

    def __init__(self, value: Any) -> None:
        super().__init__("consent status", value)


class InvalidTransitionError(ConsentError):
    code = "invalid_state"
    http_status = 409

    def __init__(self, consent_id: Any, current: Any, requested: Any) -> None:
        self.consent_id = consent_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Consent {consent_id} cannot move from {getattr(current, 'value', current)} "
            f"to {getattr(requested, 'value', requested)}"
        )


class ConsentInvalidError(ConsentError):
    """A consent gate said no. Callers surface it as a client rejection."""

    code = "consent_invalid"
    http_status = 401

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None) -> None:
        self.reason = reason
        super().__init__(message or "Invalid or expired consent")


class BackendOperationError(ConsentError):
    code = "operation_failed"
    http_status = 409


class InfrastructureError(ConsentError):
    code = "service_unavailable"
    http_status = 503
    retryable = True


class StoreUnavailableError(InfrastructureError):
    pass


class LockUnavailableError(InfrastructureError):
    code = "lock_unavailable"


def build_error(exc: BaseException) -> Dict[str, Any]:
    """Render the uniform error envelope for whatever layer sits above us."""
    if isinstance(exc, InfrastructureError):
        # Avoid leaking internals; logs will carry the stacktrace
        code, status, retryable = exc.code, exc.http_status, True
        message = _MESSAGES[code]
    elif isinstance(exc, ConsentError):
        code, status, retryable = exc.code, exc.http_status, exc.retryable
        message = exc.message
    else:
        code, status, retryable = "server_error", 500, False
        message = _MESSAGES["server_error"]
    return {
        "error": {
            "code": code,
            "http_status": status,
            "message": message,
            "retryable": retryable,
            "correlation_id": get_correlation_id(),
        }
    }
