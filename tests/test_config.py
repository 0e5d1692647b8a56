"""
tests/test_config.py -- Startup validation in core/config.py.

Covers:
  - Production mode refuses to start without SECRET_KEY
  - Dev mode generates a key; short keys are rejected in both modes
  - BCRYPT_ROUNDS outside bcrypt's 4..31 range is rejected
  - EXTRA_DENY_PATTERNS entries must compile
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_KEY = "k" * 32


def test_production_requires_secret_key() -> None:
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_debug_generates_secret_key() -> None:
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_short_secret_key_rejected() -> None:
    with pytest.raises(ValidationError, match="at least 32"):
        Settings(debug=True, secret_key="too-short")


def test_defaults() -> None:
    settings = Settings(debug=False, secret_key=GOOD_KEY, bcrypt_rounds=12)
    assert settings.session_hours == 24
    assert settings.remember_me_days == 30
    assert settings.login_rate_limit == "10/minute"
    assert settings.self_registration_enabled is True


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_range(rounds: int) -> None:
    with pytest.raises(ValidationError):
        Settings(secret_key=GOOD_KEY, bcrypt_rounds=rounds)


def test_invalid_deny_pattern_rejected() -> None:
    with pytest.raises(ValidationError, match="not a valid regex"):
        Settings(secret_key=GOOD_KEY, extra_deny_patterns=["(unclosed"])


def test_valid_deny_patterns_accepted() -> None:
    settings = Settings(secret_key=GOOD_KEY, extra_deny_patterns=[r"\bsleep\s*\("])
    assert settings.extra_deny_patterns == [r"\bsleep\s*\("]
