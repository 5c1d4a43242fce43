class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is malformed."""


class AuthenticationError(DomainError):
    """Raised when there is no valid login for the request."""


class AuthorizationError(DomainError):
    """Raised when the caller lacks permission or does not own the target."""


class NotFoundError(DomainError):
    """Raised when a student, session or record does not exist."""


class InvalidStateError(DomainError):
    """Raised when the request is well formed but cannot apply to current data.

    Examples: a student with no assignment for the scanned day, or a QR payload
    that does not bind to a student.
    """


class DuplicateRecordError(DomainError):
    """Raised by repositories when a unique key is already taken."""


class StorageError(DomainError):
    """Raised when the data store fails or is unreachable."""
