class DirectoryError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DirectoryError):
    """A request field is missing, blank or malformed. Raised before any write."""

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class NotFoundError(DirectoryError):
    # Reported as a generic 400, not 404.
    pass


class AuthError(DirectoryError):
    status_code = 401


class StoreUnavailableError(Exception):
    """The key-value store could not be reached. Safe to retry."""
