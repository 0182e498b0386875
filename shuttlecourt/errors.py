"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class RegistrationClosedError(ValidationError):
    """Raised when players try to sign up while registration is disabled."""

    def __init__(self, message="Registration is currently closed."):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = 403


class ConflictError(AppError):
    """Raised when stored data collides with the one-record-per-week rule."""

    def __init__(self, message="Conflicting registration data."):
        """Initialize the error."""
        super().__init__(message, 409)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class UnauthorizedError(AppError):
    """Raised when an admin-only action is attempted without a valid session."""

    def __init__(self, message="Unauthorized: admin session required."):
        """Initialize the error."""
        super().__init__(message, 401)


class InvalidCredentialError(UnauthorizedError):
    """Raised when the submitted admin code does not match."""

    def __init__(self, message="Invalid admin code."):
        """Initialize the error."""
        super().__init__(message)


class PersistenceError(AppError):
    """Raised when the backing store cannot complete a call."""

    def __init__(self, message="The data store is unavailable."):
        """Initialize the error."""
        super().__init__(message, 503)
