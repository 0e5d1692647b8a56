"""
auth/tokens.py -- Session issuance: signed JWT session artifacts and cookies.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, username (sub), email, role, iat and exp. Verification
       returns None on any failure -- the route layer turns that into a 401.

  Lifetime: a normal login or a fresh registration gets a 24-hour session;
       "remember me" gets 30 days. Both are configurable (SESSION_HOURS,
       REMEMBER_ME_DAYS). A remember-me cookie's max_age equals the token
       lifetime; a normal session uses a browser-session cookie.

  The issuer only decides claims and expiry for an identity that AuthService
  has already authenticated. It never looks at passwords.

  SECRET_KEY: sourced from core.config.get_settings(), validated at startup
       (>= 32 chars, required outside DEBUG) [M6][M7].

Layer rule: no imports from api/. Import from core/ is allowed -- core/ is
the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User

logger = logging.getLogger("safevault.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton [M6]
# ---------------------------------------------------------------------------

_settings = get_settings()
_SECRET_KEY = _settings.secret_key

_ALGORITHM = "HS256"

COOKIE_NAME = "access_token"


@dataclass(frozen=True)
class SessionToken:
    """A freshly issued session artifact.

    expires_in is in seconds and is used both for the response body and the
    cookie max_age.
    """

    token: str
    expires_in: int
    expires_at: datetime
    persistent: bool


def session_lifetime(remember_me: bool) -> timedelta:
    if remember_me:
        return timedelta(days=_settings.remember_me_days)
    return timedelta(hours=_settings.session_hours)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_session(user: User, remember_me: bool = False) -> SessionToken:
    """Encode a signed JWT for an authenticated user.

    Args:
        user:        The identity returned by AuthService.register/login.
        remember_me: False -> short-lived (24h) session; True -> long-lived
                     (30 days) persistent session.
    """
    now = datetime.now(timezone.utc)
    lifetime = session_lifetime(remember_me)
    expire = now + lifetime
    payload = {
        "sub": user.username,
        "user_id": user.id,
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": expire,
    }
    token = jwt.encode(payload, _SECRET_KEY, algorithm=_ALGORITHM)
    return SessionToken(
        token=token,
        expires_in=int(lifetime.total_seconds()),
        expires_at=expire,
        persistent=remember_me,
    )


def decode_session_token(token: str) -> dict | None:
    """Decode and verify a session JWT. Returns the payload dict or None on any failure.

    Returning None (rather than raising) keeps the caller simple: any invalid
    or expired token is treated as unauthenticated.
    """
    try:
        payload = jwt.decode(token, _SECRET_KEY, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if "user_id" not in payload or "role" not in payload:
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, session: SessionToken) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: set only for remember-me sessions. A normal session is a browser
        session cookie, bounded server-side by the token's exp claim.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=session.token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=session.expires_in if session.persistent else None,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME)
