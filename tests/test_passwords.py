"""
tests/test_passwords.py -- Unit tests for auth/passwords.py.

Covers:
  - verify(p, s, hash(p, s)) is True; a different password or salt is False
  - Salts are 32 random bytes, base64-encoded, and never repeat
  - bcrypt adds its own salt: two digests of the same input differ
  - Passwords longer than bcrypt's 72-byte window still hash and verify fully
  - Empty inputs are rejected on hash and return False on verify
  - Malformed digests return False instead of raising
  - A missing secure random source is fatal (CryptoFailure), never a fallback
"""

from __future__ import annotations

import base64

import pytest

from auth.errors import CryptoFailure
from auth.passwords import BCRYPT_ROUNDS, SALT_SIZE, CredentialHasher


def test_default_cost_factor_is_12() -> None:
    assert BCRYPT_ROUNDS == 12
    assert CredentialHasher().rounds == 12


def test_digest_records_cost_factor(hasher: CredentialHasher) -> None:
    digest = hasher.hash_password("Str0ng!Pass", hasher.generate_salt())
    assert digest.startswith("$2b$04$")


def test_round_trip_verifies(hasher: CredentialHasher) -> None:
    salt = hasher.generate_salt()
    digest = hasher.hash_password("Str0ng!Pass", salt)
    assert hasher.verify_password("Str0ng!Pass", salt, digest) is True


@pytest.mark.parametrize("other", ["str0ng!pass", "Str0ng!Pass ", "Str0ng!Pas", "x"])
def test_different_password_fails(hasher: CredentialHasher, other: str) -> None:
    salt = hasher.generate_salt()
    digest = hasher.hash_password("Str0ng!Pass", salt)
    assert hasher.verify_password(other, salt, digest) is False


def test_different_salt_fails(hasher: CredentialHasher) -> None:
    digest = hasher.hash_password("Str0ng!Pass", hasher.generate_salt())
    assert hasher.verify_password("Str0ng!Pass", hasher.generate_salt(), digest) is False


def test_digest_does_not_contain_password_or_salt(hasher: CredentialHasher) -> None:
    salt = hasher.generate_salt()
    digest = hasher.hash_password("Str0ng!Pass", salt)
    assert "Str0ng!Pass" not in digest
    assert salt not in digest


def test_same_input_produces_different_digests(hasher: CredentialHasher) -> None:
    salt = hasher.generate_salt()
    first = hasher.hash_password("Str0ng!Pass", salt)
    second = hasher.hash_password("Str0ng!Pass", salt)
    assert first != second
    assert hasher.verify_password("Str0ng!Pass", salt, second) is True


def test_salt_is_32_bytes_base64(hasher: CredentialHasher) -> None:
    salt = hasher.generate_salt()
    assert len(base64.b64decode(salt)) == SALT_SIZE
    assert len(salt) <= 100  # fits the salt column


def test_salts_are_unique(hasher: CredentialHasher) -> None:
    salts = {hasher.generate_salt() for _ in range(500)}
    assert len(salts) == 500


def test_long_password_differing_after_72_bytes(hasher: CredentialHasher) -> None:
    """The whole password participates, not just bcrypt's first 72 bytes."""
    salt = hasher.generate_salt()
    base = "Aa1!" * 30  # 120 bytes
    digest = hasher.hash_password(base + "X", salt)
    assert hasher.verify_password(base + "X", salt, digest) is True
    assert hasher.verify_password(base + "Y", salt, digest) is False


def test_unicode_password(hasher: CredentialHasher) -> None:
    salt = hasher.generate_salt()
    digest = hasher.hash_password("Pässwörd!9ü", salt)
    assert hasher.verify_password("Pässwörd!9ü", salt, digest) is True


def test_hash_rejects_empty_password(hasher: CredentialHasher) -> None:
    with pytest.raises(ValueError):
        hasher.hash_password("", hasher.generate_salt())


def test_hash_rejects_empty_salt(hasher: CredentialHasher) -> None:
    with pytest.raises(ValueError):
        hasher.hash_password("Str0ng!Pass", "")


def test_verify_empty_inputs_return_false(hasher: CredentialHasher) -> None:
    salt = hasher.generate_salt()
    digest = hasher.hash_password("Str0ng!Pass", salt)
    assert hasher.verify_password("", salt, digest) is False
    assert hasher.verify_password("Str0ng!Pass", "", digest) is False
    assert hasher.verify_password("Str0ng!Pass", salt, "") is False


@pytest.mark.parametrize("digest", ["not-a-hash", "$2b$04$short", "$2b$99$" + "a" * 53, "\x00\x01"])
def test_verify_malformed_digest_returns_false(hasher: CredentialHasher, digest: str) -> None:
    assert hasher.verify_password("Str0ng!Pass", hasher.generate_salt(), digest) is False


def test_invalid_rounds_rejected() -> None:
    with pytest.raises(ValueError):
        CredentialHasher(rounds=3)
    with pytest.raises(ValueError):
        CredentialHasher(rounds=32)


def test_missing_random_source_is_fatal(hasher: CredentialHasher, monkeypatch: pytest.MonkeyPatch) -> None:
    def _no_entropy(n: int) -> bytes:
        raise NotImplementedError("no secure random source")

    monkeypatch.setattr("auth.passwords.secrets.token_bytes", _no_entropy)
    with pytest.raises(CryptoFailure):
        hasher.generate_salt()
