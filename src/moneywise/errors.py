"""Error types raised across the MoneyWise engine and repositories."""


class MoneyWiseError(Exception):
    """Base class for every error MoneyWise raises on purpose."""


class ValidationError(MoneyWiseError):
    """Raised when user input is rejected before any storage call."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field


class StorageError(MoneyWiseError):
    """Raised when the storage backend fails (connection, SQL, constraint)."""


class NotAuthenticatedError(MoneyWiseError):
    """Raised when an operation is attempted without a user session."""

    def __init__(self, message="Authorization required. Please log in."):
        super().__init__(message)
        self.message = message
