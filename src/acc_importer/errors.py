"""Error taxonomy surfaced to API callers."""


class UserError(Exception):
    """Base class for errors whose message is shown to the caller.

    These messages must not carry tokens or other sensitive data.
    """

    status_code = 400


class Unauthorized(UserError):
    """No session, or an expired one that cannot be refreshed."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class InvalidState(UserError):
    """OAuth callback state is missing or does not match the stored cookie."""

    def __init__(self, message: str = "Invalid OAuth state.") -> None:
        super().__init__(message)


class MissingCode(UserError):
    """OAuth callback arrived without an authorization code."""

    def __init__(self, message: str = "Missing OAuth code.") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when request input fails validation."""


class NotFoundError(UserError):
    """Raised when a requested resource does not exist."""

    status_code = 404


class UpstreamHttpError(Exception):
    """Non-2xx response from the ACC catalog API."""

    def __init__(self, action: str, status_code: int, body: str) -> None:
        super().__init__(f"{action} ({status_code})")
        self.action = action
        self.status_code = status_code
        self.body = body
