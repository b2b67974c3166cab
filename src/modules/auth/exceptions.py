"""Authentication flow exceptions.

Each error carries the HTTP status it is rendered with and a message that
is safe to show to the caller.
"""


class AuthFlowError(Exception):
    """Base exception for auth flow failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(AuthFlowError):
    """Raised for malformed or mismatched input, including a wrong OTP."""

    status_code = 400


class ConflictError(AuthFlowError):
    """Raised when registering an email that already has an account."""

    status_code = 400


class NotFoundError(AuthFlowError):
    """Raised when the addressed account does not exist."""

    status_code = 400


class AuthenticationError(AuthFlowError):
    """Raised when sign-in credentials are rejected."""

    status_code = 400


class DependencyError(AuthFlowError):
    """Raised when mail delivery or token signing fails."""

    status_code = 500


class ServerError(AuthFlowError):
    """Raised for any failure that has no more specific classification."""

    status_code = 500


class ServiceUnavailableError(ServerError):
    """Raised when a request arrives before the flow has been configured."""

    status_code = 503


class UserAlreadyExistsError(Exception):
    """Raised by the repository when the email UNIQUE constraint is violated."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"User with email {email} already exists")


class TokenSigningError(Exception):
    """Raised when a session token cannot be produced."""

    pass


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing."""

    pass
