"""
Domain Error Taxonomy

Every failure surfaced to a caller is one of these classes. Each carries a
stable machine-readable `reason` and a human-readable message; the API
layer maps them to HTTP responses without leaking internals.

- ValidationError: malformed or out-of-range input (fixable by the caller)
- NotFoundError: resource or booking does not exist
- ConflictError: no availability, invalid state transition, duplicate action
- AuthorizationError: actor lacks permission for the requested action
- ServiceError: downstream dependency failure (transient, retryable)
"""


class DomainError(Exception):
    """Base class for all expected domain failures"""

    default_reason = 'error'
    default_message = 'Request could not be completed.'
    status_code = 500
    retryable = False

    def __init__(self, message: str | None = None, *, reason: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.reason = reason or self.default_reason
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {
            'reason': self.reason,
            'detail': self.message,
            'retryable': self.retryable,
        }
        if self.details:
            payload['errors'] = self.details
        return payload

    def __repr__(self):
        return f"{self.__class__.__name__}(reason={self.reason!r}, message={self.message!r})"


class ValidationError(DomainError):
    default_reason = 'invalid_request'
    default_message = 'Request is invalid.'
    status_code = 400


class NotFoundError(DomainError):
    default_reason = 'not_found'
    default_message = 'Not found.'
    status_code = 404


class ConflictError(DomainError):
    default_reason = 'conflict'
    default_message = 'Request conflicts with the current state.'
    status_code = 409

    def __init__(self, message: str | None = None, *, reason: str | None = None, details: dict | None = None):
        super().__init__(message, reason=reason, details=details)
        # "Not available for selected dates" has always been a 400 for clients
        if self.reason == 'not_available':
            self.status_code = 400


class AuthorizationError(DomainError):
    default_reason = 'forbidden'
    default_message = 'You do not have permission to perform this action.'
    status_code = 403


class ServiceError(DomainError):
    default_reason = 'service_unavailable'
    default_message = 'A downstream service is unavailable. Please retry.'
    status_code = 503
    retryable = True


class RefundError(ServiceError):
    default_reason = 'refund_failed'
    default_message = 'Failed to process refund. Please contact support.'
    status_code = 502
