"""
auth/errors.py -- Failure taxonomy for registration and login.

Every failure the auth core can produce is an AuthError subclass carrying a
machine-readable code, a caller-safe message and the HTTP status the API layer
maps it to. AuthService returns these as values (register) so callers handle
each kind explicitly; the hasher and the store raise them.

Message policy:
  ValidationError / DuplicateCredentialError -- safe to show verbatim. They
      never restate the submitted payload.
  InvalidCredentialError -- one generic message for every login failure, so
      "unknown account" and "wrong password" are indistinguishable.
  CryptoFailure / StorageFailure -- generic message only. The detail goes to
      the server log, never to the caller.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    code = "auth_error"
    status_code = 400
    default_message = "The request could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed or malicious input. The message never echoes the payload."""

    code = "validation_error"
    status_code = 400
    default_message = "Invalid input detected."

    def __init__(self, message: str | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class DuplicateCredentialError(AuthError):
    """Username or email already registered. Names the colliding field."""

    status_code = 409

    _MESSAGES = {
        "username": "Username is already taken.",
        "email": "Email is already registered.",
    }

    def __init__(self, field: str) -> None:
        self.field = field
        self.code = f"duplicate_{field}"
        super().__init__(self._MESSAGES.get(field, "Account already exists."))


class InvalidCredentialError(AuthError):
    code = "bad_credentials"
    status_code = 401
    default_message = "Invalid username/email or password."


class CryptoFailure(AuthError):
    """Secure randomness or the hash primitive is unavailable. Not retried."""

    code = "crypto_failure"
    status_code = 500
    default_message = "An unexpected error occurred. Please try again later."


class StorageFailure(AuthError):
    """Backing store unreachable, or a constraint violation with no mapping."""

    code = "storage_failure"
    status_code = 503
    default_message = "The service is temporarily unavailable. Please try again later."


class UniquenessViolation(StorageFailure):
    """Raised by UserStore when the UNIQUE constraint on a field rejects an insert.

    Internal signal only. AuthService converts it to DuplicateCredentialError;
    it must never reach a caller as-is.
    """

    code = "uniqueness_violation"
    status_code = 409

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"UNIQUE constraint violated on users.{field}")


class LastAdminError(AuthError):
    """A status or role change would leave no active admin account.

    Raised by UserStore from the same UPDATE that performs the change, so two
    concurrent demotions cannot both pass the check.
    """

    code = "last_admin"
    status_code = 400
    default_message = "Cannot remove the last active admin account."
