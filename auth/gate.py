"""
auth/gate.py -- Input gate: deny-list validation and HTML-safe sanitization.

Every externally supplied string passes through InputGate before it reaches
AuthService, the store, or a response body.

Security design:
  The deny-list is a blocklist and therefore incomplete against novel
  encodings. It is a secondary layer only: the store binds every value as a
  query parameter, and the API returns JSON rather than rendering HTML. Never
  rely on validate() as the sole control.

  Patterns are compiled once when the gate is built and stored in a tuple.
  The gate is immutable after construction; extra patterns come from
  Settings.extra_deny_patterns at startup, never from request data.

  sanitize() encodes '&' in the same pass as the other characters
  (str.translate), so existing entities are never double-encoded.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

MAX_INPUT_LENGTH = 255

USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 50
EMAIL_MAX_LEN = 100
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 100

PASSWORD_SPECIALS = "@$!%*?&"

# ---------------------------------------------------------------------------
# Deny-list
# ---------------------------------------------------------------------------

DEFAULT_DENY_PATTERNS: tuple[str, ...] = (
    # Markup injection
    r"<\s*script\b",
    r"<\s*iframe\b",
    r"<\s*object\b",
    r"<\s*embed\b",
    r"<\s*style\b",
    r"<\s*link\b",
    r"<\s*meta\b",
    r"\bon\w+\s*=",  # inline event handlers (onclick=, onerror= ...)
    r"javascript\s*:",
    r"vbscript\s*:",
    r"data\s*:\s*text/html",
    r"eval\s*\(",
    r"expression\s*\(",
    # Query injection
    r"--",
    r"/\*",
    r"\*/",
    r";\s*(drop|delete|insert|update|create|alter|exec|execute)\b",
    r"union\s+(all\s+)?select",
    r"1\s*=\s*1",
    r"'\s*or\s*'",
    r"\|\|",
    r"&&",
    # Path traversal
    r"\.\.[/\\]",
)

_FLAGS = re.IGNORECASE | re.DOTALL

# ASCII control characters except tab (0x09), LF (0x0A) and CR (0x0D).
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

_HTML_ENTITIES = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#x27;",
        "/": "&#x2F;",
        "\\": "&#x5C;",
        "`": "&#x60;",
    }
)

_USERNAME_RE = re.compile(r"[A-Za-z0-9_]+")
_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s.]+")


class InputGate:
    """Immutable validator/sanitizer built from a fixed deny-list.

    Usage:
        gate = InputGate(extra_patterns=settings.extra_deny_patterns)
        if gate.validate(raw):
            clean = gate.sanitize(raw)
    """

    __slots__ = ("_patterns",)

    def __init__(self, extra_patterns: Iterable[str] = ()) -> None:
        sources = DEFAULT_DENY_PATTERNS + tuple(extra_patterns)
        self._patterns: tuple[re.Pattern[str], ...] = tuple(re.compile(p, _FLAGS) for p in sources)

    @property
    def patterns(self) -> tuple[str, ...]:
        return tuple(p.pattern for p in self._patterns)

    def validate(self, text: str | None) -> bool:
        """Return False for blank, over-long, or deny-listed input."""
        if text is None or not text.strip():
            return False
        if len(text) > MAX_INPUT_LENGTH:
            return False
        return not any(p.search(text) for p in self._patterns)

    def sanitize(self, text: str | None) -> str:
        """Return text safe to embed in an HTML text context.

        Strips control characters, trims, truncates to MAX_INPUT_LENGTH, then
        entity-encodes & < > " ' / \\ `. Not a substitute for bound parameters.
        """
        if text is None:
            return ""
        cleaned = _CONTROL_CHARS.sub("", text).strip()
        if not cleaned:
            return ""
        return cleaned[:MAX_INPUT_LENGTH].translate(_HTML_ENTITIES)


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------


def is_valid_username(username: str) -> bool:
    return (
        USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN
        and _USERNAME_RE.fullmatch(username) is not None
    )


def is_valid_email(email: str) -> bool:
    return len(email) <= EMAIL_MAX_LEN and _EMAIL_RE.fullmatch(email) is not None


def password_policy_errors(password: str) -> list[str]:
    """Return human-readable policy violations; an empty list means the password is acceptable."""
    errors: list[str] = []
    if not PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN:
        errors.append(f"Password must be between {PASSWORD_MIN_LEN} and {PASSWORD_MAX_LEN} characters.")
    if not any(c.islower() for c in password):
        errors.append("Password must contain a lowercase letter.")
    if not any(c.isupper() for c in password):
        errors.append("Password must contain an uppercase letter.")
    if not any(c.isdigit() for c in password):
        errors.append("Password must contain a digit.")
    if not any(c in PASSWORD_SPECIALS for c in password):
        errors.append(f"Password must contain one of {PASSWORD_SPECIALS}.")
    return errors


default_gate = InputGate()
