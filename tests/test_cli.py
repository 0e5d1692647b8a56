"""
tests/test_cli.py -- Tests for the operator CLI (main.py).

Covers:
  - create-admin registers through AuthService and promotes the account
  - create-admin reports gate / policy / duplicate failures with exit code 1
  - list-users, set-role and toggle-status against a file-backed store
  - Unknown ids exit 1
"""

from __future__ import annotations

import pytest

import main
from auth.store import UserStore
from core.config import get_settings

PASSWORD = "Adm1n!Pass"


@pytest.fixture
def db_url(tmp_path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Point the cached Settings at a throwaway SQLite file for one test."""
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(get_settings(), "database_url", url)
    return url


def _answer_prompts(monkeypatch: pytest.MonkeyPatch, password: str, confirm: str | None = None) -> None:
    answers = iter([password, confirm if confirm is not None else password])
    monkeypatch.setattr(main, "getpass", lambda prompt="": next(answers))


def test_create_admin(db_url: str, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    _answer_prompts(monkeypatch, PASSWORD)
    assert main.main(["create-admin", "root_admin", "root@example.com"]) == 0
    assert "root_admin" in capsys.readouterr().out

    store = UserStore(db_url)
    try:
        user = store.get_by_username("root_admin")
        assert user.is_admin is True
        assert user.is_active is True
        assert PASSWORD not in user.password_hash
    finally:
        store.close()


def test_create_admin_password_mismatch(db_url: str, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    _answer_prompts(monkeypatch, PASSWORD, "Other!Pass1")
    assert main.main(["create-admin", "root_admin", "root@example.com"]) == 1
    assert "do not match" in capsys.readouterr().out


def test_create_admin_rejects_injection(db_url: str, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    _answer_prompts(monkeypatch, PASSWORD)
    assert main.main(["create-admin", "<script>", "root@example.com"]) == 1
    assert "Invalid input" in capsys.readouterr().out


def test_create_admin_duplicate(db_url: str, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    _answer_prompts(monkeypatch, PASSWORD)
    main.main(["create-admin", "root_admin", "root@example.com"])
    _answer_prompts(monkeypatch, PASSWORD)
    assert main.main(["create-admin", "root_admin", "other@example.com"]) == 1
    assert "already taken" in capsys.readouterr().out


def test_list_set_role_and_toggle(db_url: str, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    _answer_prompts(monkeypatch, PASSWORD)
    main.main(["create-admin", "root_admin", "root@example.com"])
    capsys.readouterr()

    assert main.main(["list-users"]) == 0
    listing = capsys.readouterr().out
    assert "root_admin" in listing
    assert "Admin" in listing
    assert "1 active admin(s)" in listing

    store = UserStore(db_url)
    user_id = store.get_by_username("root_admin").id
    store.close()

    assert main.main(["set-role", str(user_id), "User"]) == 0
    assert "now User" in capsys.readouterr().out

    assert main.main(["toggle-status", str(user_id)]) == 0
    assert "inactive" in capsys.readouterr().out


def test_list_users_empty(db_url: str, capsys) -> None:
    assert main.main(["list-users"]) == 0
    assert "No users" in capsys.readouterr().out


def test_unknown_id(db_url: str, capsys) -> None:
    assert main.main(["toggle-status", "404"]) == 1
    assert main.main(["set-role", "404", "Admin"]) == 1


def test_set_role_rejects_unknown_role(db_url: str) -> None:
    with pytest.raises(SystemExit):
        main.main(["set-role", "1", "superuser"])
