"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper.
Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Uniqueness of username and email is enforced by named UNIQUE constraints,
  not by the application. AuthService pre-checks only to produce a friendlier
  message; two concurrent registrations can both pass that check, and the
  constraint is what stops the second insert. create_user() translates the
  resulting IntegrityError into UniquenessViolation(field) so the caller can
  map it to a duplicate-credential error instead of an opaque failure.

  Every other SQLAlchemyError is logged with full detail and re-raised as
  StorageFailure, which the API reduces to a generic 503.

  The last-admin rule is enforced inside the UPDATE itself (keep_one_admin),
  not by a separate count, so concurrent demotions serialize on the write.

DB path: auth/safevault_auth.db unless DATABASE_URL is set.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import LastAdminError, StorageFailure, UniquenessViolation
from auth.models import Role, User

logger = logging.getLogger("safevault.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False),
    Column("email", String(100), nullable=False),
    Column("password_hash", Text, nullable=False),  # opaque bcrypt digest, never truncated
    Column("salt", String(100), nullable=False),
    Column("role", String(20), nullable=False, server_default=Role.USER.value),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),  # NULL until first status/role change
    UniqueConstraint("username", name="uq_users_username"),
    UniqueConstraint("email", name="uq_users_email"),
)

_UNIQUE_FIELDS = ("username", "email")


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _leaves_an_admin(user_id: int):
    """WHERE clause: the row is not an active admin, or another active admin exists."""
    others = _users.alias("other_admins")
    other_admins = (
        select(func.count())
        .select_from(others)
        .where(
            (others.c.role == Role.ADMIN.value)
            & (others.c.is_active.is_(True))
            & (others.c.id != user_id)
        )
        .scalar_subquery()
    )
    return or_(
        _users.c.role != Role.ADMIN.value,
        _users.c.is_active.is_(False),
        other_admins > 0,
    )


def _violated_field(exc: IntegrityError) -> str | None:
    """Name the UNIQUE column an IntegrityError refers to, if the driver says.

    SQLite reports "UNIQUE constraint failed: users.username"; PostgreSQL and
    MySQL report the constraint name (uq_users_username).
    """
    message = str(exc.orig).lower()
    for field in _UNIQUE_FIELDS:
        if f"users.{field}" in message or f"uq_users_{field}" in message:
            return field
    return None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user_id = store.create_user(User(username="alice", email="a@example.com", ...))
        user = store.get_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except StorageFailure:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Storage error during %s", operation)
            raise StorageFailure() from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises UniquenessViolation(field) when the username or email UNIQUE
        constraint rejects the row -- including when a concurrent request
        inserted the same value after the caller's pre-check.
        """
        with self._guard("create_user"):
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(
                        _users.insert().values(
                            username=user.username,
                            email=user.email,
                            password_hash=user.password_hash,
                            salt=user.salt,
                            role=user.role,
                            is_active=user.is_active,
                            created_at=user.created_at or _now_iso(),
                            updated_at=None,
                        )
                    )
                    return result.inserted_primary_key[0]
            except IntegrityError as exc:
                field = _violated_field(exc) or self._colliding_field(user)
                if field is None:
                    raise
                raise UniquenessViolation(field) from exc

    def toggle_active(self, user_id: int, *, keep_one_admin: bool = False) -> User | None:
        """Flip is_active in a single UPDATE and stamp updated_at.

        Returns the updated User, or None if user_id was not found.

        keep_one_admin=True folds the last-admin check into the same UPDATE:
        an active admin is only deactivated while another active admin
        exists, otherwise LastAdminError is raised and nothing changes.
        """
        stmt = _users.update().where(_users.c.id == user_id)
        if keep_one_admin:
            stmt = stmt.where(_leaves_an_admin(user_id))
        stmt = stmt.values(is_active=~_users.c.is_active, updated_at=_now_iso())
        with self._guard("toggle_active"):
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
            if result.rowcount == 0:
                return self._refused(user_id, keep_one_admin)
        logger.info("User %s status toggled", user_id)
        return self.get_by_id(user_id)

    def update_role(self, user_id: int, role: str, *, keep_one_admin: bool = False) -> User | None:
        """Reassign role and stamp updated_at. Returns None if user_id was not found.

        Raises ValueError for a role outside the Role enumeration, before any SQL runs.
        With keep_one_admin=True, demoting the last active admin raises
        LastAdminError; the check and the write are one statement.
        """
        role = Role(role).value
        stmt = _users.update().where(_users.c.id == user_id)
        guarded = keep_one_admin and role == Role.USER.value
        if guarded:
            stmt = stmt.where(_leaves_an_admin(user_id))
        stmt = stmt.values(role=role, updated_at=_now_iso())
        with self._guard("update_role"):
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
            if result.rowcount == 0:
                return self._refused(user_id, guarded)
        logger.info("User %s role updated to %s", user_id, role)
        return self.get_by_id(user_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        with self._guard("has_users"):
            with self.engine.connect() as conn:
                count = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (count or 0) > 0

    def get_by_id(self, user_id: int) -> User | None:
        return self._fetch_one(_users.c.id == user_id, "get_by_id")

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        return self._fetch_one(_users.c.username == username, "get_by_username")

    def get_by_email(self, email: str) -> User | None:
        return self._fetch_one(_users.c.email == email, "get_by_email")

    def find_by_username_or_email(self, username: str, email: str) -> User | None:
        """Return any user whose username or email collides with the given pair."""
        return self._fetch_one(
            or_(_users.c.username == username, _users.c.email == email),
            "find_by_username_or_email",
        )

    def find_active_by_login(self, identifier: str) -> User | None:
        """Return the active user whose username OR email equals identifier exactly.

        Deactivated accounts are filtered in SQL so they can never reach
        password verification.
        """
        return self._fetch_one(
            or_(_users.c.username == identifier, _users.c.email == identifier) & (_users.c.is_active.is_(True)),
            "find_active_by_login",
        )

    def username_exists(self, username: str) -> bool:
        return self._exists(_users.c.username == username, "username_exists")

    def email_exists(self, email: str) -> bool:
        return self._exists(_users.c.email == email, "email_exists")

    def list_users(self) -> list[User]:
        """Return all users ordered by username."""
        with self._guard("list_users"):
            with self.engine.connect() as conn:
                rows = conn.execute(_users.select().order_by(_users.c.username)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_active_admins(self) -> int:
        """Return the number of active admin users.

        Reported by the operator CLI. The admin routes do not count first;
        they rely on the keep_one_admin UPDATE guard instead [M4].
        """
        with self._guard("count_active_admins"):
            with self.engine.connect() as conn:
                count = conn.execute(
                    select(func.count())
                    .select_from(_users)
                    .where((_users.c.role == Role.ADMIN.value) & (_users.c.is_active.is_(True)))
                ).scalar()
        return count or 0

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fetch_one(self, clause, operation: str) -> User | None:
        with self._guard(operation):
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(clause).order_by(_users.c.id)).first()
        return _row_to_user(row) if row is not None else None

    def _exists(self, clause, operation: str) -> bool:
        with self._guard(operation):
            with self.engine.connect() as conn:
                row = conn.execute(select(_users.c.id).where(clause).limit(1)).first()
        return row is not None

    def _refused(self, user_id: int, guarded: bool) -> None:
        # Zero rows: either the id is unknown or the last-admin condition held.
        if guarded and self.get_by_id(user_id) is not None:
            logger.warning("Refused to remove last active admin (user %s)", user_id)
            raise LastAdminError()
        return None

    def _colliding_field(self, user: User) -> str | None:
        # Driver message did not name the column; ask the table instead.
        if self.username_exists(user.username):
            return "username"
        if self.email_exists(user.email):
            return "email"
        return None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        password_hash=row.password_hash,
        salt=row.salt,
        role=row.role,
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
