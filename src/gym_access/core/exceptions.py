from __future__ import annotations

from .enums import ErrorKind


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries the error ``kind`` reported to scanning clients and
    whether the caller may retry the same request unchanged.
    """

    kind: ErrorKind = ErrorKind.MALFORMED_INPUT
    retryable: bool = False
    default_message: str = "Request rejected"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class MalformedTokenError(ValidationError):
    kind = ErrorKind.MALFORMED_INPUT
    default_message = "Invalid QR data format"


class TokenExpiredError(DomainError):
    kind = ErrorKind.EXPIRED
    default_message = "QR code has expired"


class TokenAlreadyUsedError(DomainError):
    kind = ErrorKind.ALREADY_USED
    default_message = "QR code has already been used"


class SubjectNotFoundError(DomainError):
    kind = ErrorKind.SUBJECT_NOT_FOUND
    default_message = "Person not found"


class SubjectInactiveError(DomainError):
    kind = ErrorKind.SUBJECT_INACTIVE
    default_message = "Person account is not active"


class BranchMismatchError(DomainError):
    kind = ErrorKind.BRANCH_MISMATCH
    default_message = "Branch access denied"


class InvalidTransitionError(DomainError):
    kind = ErrorKind.INVALID_TRANSITION
    default_message = "Already checked out for today"


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class AuthorizationError(DomainError):
    """Raised when a caller lacks permission for an action."""

    kind = ErrorKind.FORBIDDEN
    default_message = "Insufficient permissions for this action"


class ForbiddenError(AuthorizationError):
    kind = ErrorKind.FORBIDDEN


class ScopeConfigurationError(AuthorizationError):
    """A branch-scoped identity without a branch (or with an unknown role)."""

    kind = ErrorKind.SCOPE_CONFIGURATION
    default_message = "User must be assigned to a branch"


class InfrastructureError(DomainError):
    """Store unavailable or transaction aborted; nothing was committed."""

    kind = ErrorKind.INFRASTRUCTURE
    retryable = True
    default_message = "Temporary failure, please retry"


class StoreUnavailableError(InfrastructureError):
    pass


class TransactionTimeoutError(InfrastructureError):
    default_message = "Check-in timed out, please retry"


class ConcurrentScanError(InfrastructureError):
    """Another scan created the same attendance row first."""

    default_message = "Another scan is in progress for this person, please retry"


class DuplicateNonceError(TokenAlreadyUsedError):
    """Raised by the store when the nonce uniqueness constraint fires."""
