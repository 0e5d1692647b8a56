"""
api/routes/v1/users.py -- User administration endpoints (admin only).

Routes:
  GET   /api/v1/users                          -- list all users, ordered by username
  POST  /api/v1/users/{user_id}/toggle-status  -- activate / deactivate an account
  PATCH /api/v1/users/{user_id}/role           -- reassign role (User / Admin)

Deactivation is the only deletion path; accounts are never removed.
Password hashes and salts are never returned or modified here.

Security:
  [M4] Blocks self-deactivation, self-demotion, and any change that would
       leave zero active admins (no recovery path without DB access).
       The zero-admins check is part of the store's UPDATE statement, so two
       concurrent requests cannot both pass it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import RolePatch, UserResponse
from auth.dependencies import require_admin
from auth.models import Role, User
from auth.store import UserStore

# Auth policy:
# - every route: requires admin. Router-level dependency enforces it; the
#   handlers that need the caller's identity also declare require_admin.
router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request) -> list[UserResponse]:
    """List all user accounts. Admin only."""
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.post("/users/{user_id}/toggle-status", response_model=UserResponse)
def toggle_status(
    request: Request,
    user_id: int,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Flip a user's active flag. Deactivated users can no longer log in."""
    user_store: UserStore = request.app.state.user_store
    target = _get_target(user_store, user_id)

    # [M4] Block self-deactivation
    if target.is_active and target.id == current_user.id:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_deactivation", "message": "You cannot deactivate your own account."},
        )

    # [M4] The last-admin check runs inside the UPDATE; LastAdminError -> 400.
    updated = user_store.toggle_active(user_id, keep_one_admin=True)
    return _to_response(updated)


@router.patch("/users/{user_id}/role", response_model=UserResponse)
def update_role(
    request: Request,
    user_id: int,
    body: RolePatch,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Reassign a user's role. Admin only."""
    user_store: UserStore = request.app.state.user_store
    target = _get_target(user_store, user_id)

    # [M4] Block self-demotion
    if body.role is Role.USER and target.is_admin and target.id == current_user.id:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_demotion", "message": "You cannot remove your own admin role."},
        )

    updated = user_store.update_role(user_id, body.role.value, keep_one_admin=True)
    return _to_response(updated)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_target(user_store: UserStore, user_id: int) -> User:
    target = user_store.get_by_id(user_id)
    if target is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return target


def _to_response(user: User | None) -> UserResponse:
    if user is None:
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "User not found after write."},
        )
    return UserResponse.from_user(user)
