from __future__ import annotations


class AuthError(Exception):
    """Base for failures that are reported to the client as {"error": message}."""

    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AuthError):
    status_code = 400
    default_message = "Missing fields"


class InvalidOrExpiredOTP(AuthError):
    status_code = 400
    default_message = "Invalid or expired OTP"


class UserExists(AuthError):
    status_code = 400
    default_message = "User already exists"


class InvalidCredentials(AuthError):
    status_code = 401
    default_message = "Invalid credentials"


class NoToken(AuthError):
    status_code = 401
    default_message = "No token"


class InvalidToken(AuthError):
    status_code = 401
    default_message = "Invalid token"


class UserNotFound(AuthError):
    status_code = 404
    default_message = "User not found"


class DuplicateEmail(Exception):
    """Raised by the account repository when the normalized email is taken."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Account already exists for {email}")
