#!/usr/bin/env python3
"""
SafeVault -- operator CLI for the account store.

Self-registration only ever creates User-role accounts, so the first admin
has to be bootstrapped out of band. This CLI goes through the same
AuthService as the API (same gate, same hasher cost, same UNIQUE handling)
and then promotes the account.

Usage:
  python main.py create-admin alice alice@example.com
  python main.py list-users
  python main.py set-role 3 Admin
  python main.py toggle-status 3

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the account store (default: auth/safevault_auth.db)
  BCRYPT_ROUNDS  bcrypt cost factor (default: 12)
"""

import argparse
import sys
from getpass import getpass

from auth.errors import AuthError
from auth.models import Role
from auth.service import build_auth_service
from auth.store import UserStore
from core.config import get_settings


def _create_admin(store: UserStore, args: argparse.Namespace) -> int:
    settings = get_settings()
    service = build_auth_service(store, settings)

    password = getpass("Password: ")
    confirm = getpass("Repeat password: ")
    outcome = service.register(args.username, args.email, password, confirm)
    if isinstance(outcome, AuthError):
        print(f"  [!] {outcome.message}")
        return 1

    store.update_role(outcome.id, Role.ADMIN.value)
    print(f"  Admin '{outcome.username}' created (id={outcome.id}).")
    return 0


def _list_users(store: UserStore, args: argparse.Namespace) -> int:
    users = store.list_users()
    if not users:
        print("  No users.")
        return 0
    print(f"  {'ID':>4}  {'USERNAME':<20} {'EMAIL':<32} {'ROLE':<6} ACTIVE")
    for u in users:
        print(f"  {u.id:>4}  {u.username:<20} {u.email:<32} {u.role:<6} {'yes' if u.is_active else 'no'}")
    print(f"\n  {len(users)} account(s), {store.count_active_admins()} active admin(s).")
    return 0


def _set_role(store: UserStore, args: argparse.Namespace) -> int:
    updated = store.update_role(args.user_id, args.role)
    if updated is None:
        print(f"  [!] No user with id {args.user_id}.")
        return 1
    print(f"  User '{updated.username}' is now {updated.role}.")
    return 0


def _toggle_status(store: UserStore, args: argparse.Namespace) -> int:
    updated = store.toggle_active(args.user_id)
    if updated is None:
        print(f"  [!] No user with id {args.user_id}.")
        return 1
    print(f"  User '{updated.username}' is now {'active' if updated.is_active else 'inactive'}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="safevault",
        description="Manage SafeVault user accounts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-admin alice alice@example.com
  python main.py list-users
  python main.py set-role 3 User
  DATABASE_URL=postgresql://user:pw@host/db python main.py list-users
        """,
    )
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    create = commands.add_parser("create-admin", help="Register an account and promote it to Admin")
    create.add_argument("username")
    create.add_argument("email")
    create.set_defaults(handler=_create_admin)

    listing = commands.add_parser("list-users", help="List all accounts ordered by username")
    listing.set_defaults(handler=_list_users)

    role = commands.add_parser("set-role", help="Reassign an account's role")
    role.add_argument("user_id", type=int)
    role.add_argument("role", choices=[r.value for r in Role])
    role.set_defaults(handler=_set_role)

    toggle = commands.add_parser("toggle-status", help="Activate or deactivate an account")
    toggle.add_argument("user_id", type=int)
    toggle.set_defaults(handler=_toggle_status)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    store = UserStore(get_settings().database_url)
    try:
        return args.handler(store, args)
    except AuthError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
