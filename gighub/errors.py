from __future__ import annotations


class GighubError(Exception):
    """Base class for errors raised by gighub services."""


class ConflictError(GighubError):
    """A uniqueness constraint was violated (e.g. duplicate email)."""


class NotFoundError(GighubError):
    """A record or token does not exist, was consumed, or never existed."""


class AuthError(GighubError):
    """Credentials did not check out. The message is always generic."""

    def __init__(self, message: str = "Invalid email or password.") -> None:
        super().__init__(message)


class CSRFError(GighubError):
    """Missing or mismatched anti-forgery token on a state-changing request."""


class MigrationError(GighubError):
    """Applying the schema migrations failed. The store must not be used."""


class DeliveryError(GighubError):
    """An email could not be delivered."""


class LoginRequired(GighubError):
    """The request needs an authenticated session and has none."""
