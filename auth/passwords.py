"""
auth/passwords.py -- Salt generation, password hashing and verification.

Security design decisions:
  Double salting: every account gets a 32-byte random salt from the OS CSPRNG
      (secrets), stored beside the digest. The password is concatenated with
      that salt and then hashed with bcrypt, which adds its own internal salt.
      If bcrypt's salt were ever predictable, the per-account salt still
      defeats precomputed dictionary tables.

  72-byte window: bcrypt only reads the first 72 bytes of its input, and
      bcrypt >= 5 raises on anything longer. password + salt (44 base64
      chars) would overflow for long passwords and silently drop the salt.
      The concatenation is therefore condensed with SHA-256 first and the
      base64 digest (44 bytes, no NUL bytes) is what bcrypt hashes.

  Cost factor: 12 (2^12 = 4096 rounds) unless overridden. Configurable only
      so tests can drop to bcrypt's minimum of 4.

  Verification: bcrypt.checkpw compares in constant time. Any malformed
      digest or internal error returns False -- never an exception that could
      leak structure or timing up the call stack.

Using bcrypt directly rather than passlib: passlib's wrap-bug detection feeds
bcrypt a >72-byte password, which bcrypt 4.x+ rejects.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets

import bcrypt

from auth.errors import CryptoFailure

logger = logging.getLogger("safevault.auth")

SALT_SIZE = 32
BCRYPT_ROUNDS = 12


class CredentialHasher:
    """bcrypt-backed hasher with a caller-supplied per-account salt.

    Usage:
        hasher = CredentialHasher()
        salt = hasher.generate_salt()
        digest = hasher.hash_password("Str0ng!Pass", salt)
        hasher.verify_password("Str0ng!Pass", salt, digest)  # True
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds

    def generate_salt(self) -> str:
        """Return 32 CSPRNG bytes, base64-encoded. Raises CryptoFailure if no secure source exists."""
        try:
            raw = secrets.token_bytes(SALT_SIZE)
        except (NotImplementedError, OSError) as exc:
            # No fallback to a non-cryptographic generator.
            raise CryptoFailure() from exc
        return base64.b64encode(raw).decode("ascii")

    def hash_password(self, password: str, salt: str) -> str:
        """Return an opaque bcrypt digest of password + salt.

        Raises ValueError on an empty password or salt, CryptoFailure if
        bcrypt itself fails.
        """
        if not password:
            raise ValueError("Password cannot be empty")
        if not salt:
            raise ValueError("Salt cannot be empty")
        try:
            digest = bcrypt.hashpw(_combine(password, salt), bcrypt.gensalt(rounds=self.rounds))
        except (ValueError, TypeError) as exc:
            raise CryptoFailure() from exc
        return digest.decode("utf-8")

    def verify_password(self, password: str, salt: str, digest: str) -> bool:
        """Return True only if password + salt matches the stored digest."""
        if not password or not salt or not digest:
            return False
        try:
            return bcrypt.checkpw(_combine(password, salt), digest.encode("utf-8"))
        except Exception:
            return False


def _combine(password: str, salt: str) -> bytes:
    condensed = hashlib.sha256((password + salt).encode("utf-8")).digest()
    return base64.b64encode(condensed)
