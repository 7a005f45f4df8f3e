"""Domain-level errors and exceptions."""

from typing import Optional


class DomainError(Exception):
    """Base domain error."""
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class NotFoundError(DomainError):
    """Raised when a referenced conversation does not exist."""
    pass


class InvalidArgumentError(DomainError):
    """Malformed role, missing required field, or missing model selection."""
    pass


class PersistenceError(DomainError):
    """Store read or write failed."""
    pass


class BackendError(DomainError):
    """Upstream inference call failed or returned a non-success status."""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        backend: Optional[str] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.status_code = status_code
        self.backend = backend


class BackendDecodeError(BackendError):
    """The backend answered, but the body did not match the expected shape."""
    pass


class SessionBusyError(InvalidArgumentError):
    """Raised when a session is asked to send while a send is in flight."""
    pass
