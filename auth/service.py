"""
auth/service.py -- Registration and login orchestration.

AuthService composes InputGate + CredentialHasher + UserStore. It decides
*whether* an identity is authenticated; issuing the session is the caller's
job (auth/tokens.py).

Result shapes:
  register() returns the created User or an AuthError instance. It never
      raises for validation, duplicate, crypto or storage failures, so the
      caller has to branch on the type:

          outcome = service.register(...)
          if isinstance(outcome, AuthError):
              ...

  login() returns the User or None. Unknown account, deactivated account and
      wrong password are all None -- the caller cannot tell them apart
      (account-enumeration resistance). StorageFailure propagates: an outage
      is not a credential problem.

Login states: received -> validated -> looked up -> password checked ->
authenticated | rejected. No retries, no lockout; throttling lives in the API
layer (api/limiter.py).

Security:
  [C1] Timing equalization. When no active account matches, the password is
       still verified against a dummy digest so response time does not
       reveal whether the account exists.
  [C2] Role is forced to Role.USER on every registration. Any client-supplied
       role (or other extra field) is discarded; only the count is logged.
  [C3] The password is validated but never sanitized -- entity-encoding would
       silently change the secret.
  [C4] The username/email pre-check is a UX shortcut only. The UNIQUE
       constraints are authoritative; a UniquenessViolation raised by a
       concurrent insert is re-mapped to DuplicateCredentialError.

Passwords, salts and digests are never logged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from auth.errors import (
    AuthError,
    CryptoFailure,
    DuplicateCredentialError,
    StorageFailure,
    UniquenessViolation,
    ValidationError,
)
from auth.gate import InputGate, default_gate, is_valid_email, is_valid_username, password_policy_errors
from auth.models import Role, User
from auth.passwords import CredentialHasher
from auth.store import UserStore

logger = logging.getLogger("safevault.auth")

_DUMMY_PASSWORD = "safevault_timing_dummy"


class AuthService:
    """Register and log in users.

    Stateless apart from the store it wraps, so one instance is shared by all
    requests.
    """

    def __init__(
        self,
        store: UserStore,
        hasher: CredentialHasher | None = None,
        gate: InputGate | None = None,
    ) -> None:
        self.store = store
        self.hasher = hasher or CredentialHasher()
        self.gate = gate or default_gate
        # Computed once so the first failed lookup costs the same as later ones [C1].
        self._dummy_salt = self.hasher.generate_salt()
        self._dummy_digest = self.hasher.hash_password(_DUMMY_PASSWORD, self._dummy_salt)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
        *,
        ignored_fields: Iterable[str] = (),
    ) -> User | AuthError:
        """Create a new account with role User.

        ignored_fields names any extra client-supplied fields (e.g. a smuggled
        "role"). They are never applied; only their count is logged, since the
        names themselves are attacker-controlled [C2].
        """
        ignored = len(tuple(ignored_fields))
        if ignored:
            logger.warning("Registration ignored %d client-supplied extra field(s)", ignored)

        error = self._validate_registration(username, email, password, confirm_password)
        if error is not None:
            return error

        username = self.gate.sanitize(username)
        email = self.gate.sanitize(email)
        if not is_valid_username(username):
            return ValidationError(
                "Username must be 3-50 characters and contain only letters, numbers and underscores.",
                field="username",
            )
        if not is_valid_email(email):
            return ValidationError("Please enter a valid email address.", field="email")

        try:
            existing = self.store.find_by_username_or_email(username, email)
        except StorageFailure as exc:
            return exc
        if existing is not None:
            field = "username" if existing.username == username else "email"
            logger.info("Registration rejected: %s already registered", field)
            return DuplicateCredentialError(field)

        try:
            salt = self.hasher.generate_salt()
            password_hash = self.hasher.hash_password(password, salt)
        except CryptoFailure as exc:
            logger.exception("Credential hashing failed during registration")
            return exc

        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            salt=salt,
            role=Role.USER.value,
            is_active=True,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            user.id = self.store.create_user(user)
        except UniquenessViolation as exc:
            # Lost the race against a concurrent registration [C4].
            logger.warning("Registration hit UNIQUE constraint on %s after pre-check", exc.field)
            return DuplicateCredentialError(exc.field)
        except StorageFailure as exc:
            return exc

        logger.info("User registered: id=%s username=%s", user.id, user.username)
        return user

    def _validate_registration(
        self, username: str, email: str, password: str, confirm_password: str
    ) -> ValidationError | None:
        fields = {
            "username": username,
            "email": email,
            "password": password,
            "confirm_password": confirm_password,
        }
        for name, value in fields.items():
            if not isinstance(value, str) or not self.gate.validate(value):
                logger.warning("Registration rejected by input gate (field=%s)", name)
                return ValidationError(field=name)

        if password != confirm_password:
            return ValidationError("Passwords do not match.", field="confirm_password")
        policy = password_policy_errors(password)
        if policy:
            return ValidationError(policy[0], field="password")
        return None

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, username_or_email: str, password: str) -> User | None:
        """Return the active User matching the credentials, else None."""
        if not isinstance(username_or_email, str) or not self.gate.validate(username_or_email):
            logger.warning("Login rejected by input gate")
            return None
        if not password:
            return None

        identifier = self.gate.sanitize(username_or_email)
        user = self.store.find_active_by_login(identifier)

        if user is None:
            # Equalize timing -- do NOT return before running bcrypt [C1]
            self.hasher.verify_password(password, self._dummy_salt, self._dummy_digest)
            logger.warning("Failed login: no active account matched")
            return None

        if not self.hasher.verify_password(password, user.salt, user.password_hash):
            logger.warning("Failed login for user id=%s", user.id)
            return None

        logger.info("Successful login for user id=%s", user.id)
        return user

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def is_username_available(self, username: str) -> bool:
        """False for taken names and for names that could never be registered."""
        if not self.gate.validate(username):
            return False
        username = self.gate.sanitize(username)
        if not is_valid_username(username):
            return False
        return not self.store.username_exists(username)

    def is_email_available(self, email: str) -> bool:
        if not self.gate.validate(email):
            return False
        email = self.gate.sanitize(email)
        if not is_valid_email(email):
            return False
        return not self.store.email_exists(email)


def build_auth_service(store: UserStore, settings) -> AuthService:
    """Wire the auth core from a Settings instance (core.config.get_settings()).

    Shared by the API lifespan and the operator CLI so both hash with the same
    cost factor and validate with the same deny-list.
    """
    return AuthService(
        store,
        hasher=CredentialHasher(rounds=settings.bcrypt_rounds),
        gate=InputGate(extra_patterns=settings.extra_deny_patterns),
    )
