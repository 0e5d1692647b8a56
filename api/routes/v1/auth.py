"""
api/routes/v1/auth.py -- Registration, login and session endpoints.

Routes:
  POST /api/v1/auth/register                      -- create account; sets session cookie (24h)
  POST /api/v1/auth/login                         -- password login; sets session cookie
  POST /api/v1/auth/logout                        -- clears cookie; 200
  GET  /api/v1/auth/me                            -- current user info (requires auth)
  GET  /api/v1/auth/availability/username/{name}  -- is a username free? (public)
  GET  /api/v1/auth/availability/email/{email}    -- is an email free? (public)

Security:
  [H2] register and login are rate-limited per IP (LOGIN_RATE_LIMIT).
  [C1] AuthService.login() provides timing equalization -- use it, never inline.
  [C2] Extra request fields (e.g. "role") are passed to AuthService only so
       they can be discarded and logged. New accounts are always role User.
  [M5] Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AvailabilityResponse,
    ErrorDetail,
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    SessionResponse,
    UserResponse,
)
from auth.dependencies import get_current_user
from auth.errors import AuthError, InvalidCredentialError
from auth.models import User
from auth.service import AuthService
from auth.tokens import SessionToken, clear_auth_cookie, issue_session, set_auth_cookie
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /api/v1/auth/register:          public (unless SELF_REGISTRATION_ENABLED=false)
# - POST /api/v1/auth/login:             public
# - POST /api/v1/auth/logout:            public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/availability/...:  public -- registration form live checks
# - GET  /api/v1/auth/me:                requires auth (get_current_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_settings.login_rate_limit)  # [H2]
@router.post("/auth/register", response_model=SessionResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a User-role account and sign it in with a 24-hour session.

    AuthService.register() returns either the new User or an AuthError. Errors
    are raised here and rendered by the AuthError handler in api/main.py:
    400 validation_error, 409 duplicate_username / duplicate_email, 500/503
    generic operational failures.
    """
    if not _settings.self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )

    service: AuthService = request.app.state.auth_service
    outcome = service.register(
        body.username,
        body.email,
        body.password,
        body.confirm_password,
        ignored_fields=tuple(body.model_extra or ()),
    )
    if isinstance(outcome, AuthError):
        raise outcome

    return _session_response(outcome, issue_session(outcome, remember_me=False), status_code=201)


@limiter.limit(_settings.login_rate_limit)  # [H2]
@router.post("/auth/login", response_model=SessionResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username-or-email and password; set the session cookie.

    Returns the same generic 401 for an unknown account, a deactivated account,
    a wrong password and gate-rejected input, so callers cannot enumerate
    accounts.
    """
    service: AuthService = request.app.state.auth_service
    user = service.login(body.username_or_email, body.password)
    if user is None:
        failure = InvalidCredentialError()
        resp = JSONResponse(
            status_code=failure.status_code,
            content=ErrorResponse(error=ErrorDetail(code=failure.code, message=failure.message)).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    return _session_response(user, issue_session(user, remember_me=body.remember_me))


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the session cookie."""
    resp = JSONResponse(content={"message": "Logged out."})
    clear_auth_cookie(resp)
    return resp


@limiter.limit("30/minute")
@router.get("/auth/availability/username/{username}", response_model=AvailabilityResponse)
def username_availability(request: Request, username: str) -> AvailabilityResponse:
    """Report whether a username can still be registered.

    Names that fail the input gate or the username rules are reported as
    unavailable rather than as an error.
    """
    service: AuthService = request.app.state.auth_service
    return AvailabilityResponse(available=service.is_username_available(username))


@limiter.limit("30/minute")
@router.get("/auth/availability/email/{email}", response_model=AvailabilityResponse)
def email_availability(request: Request, email: str) -> AvailabilityResponse:
    service: AuthService = request.app.state.auth_service
    return AvailabilityResponse(available=service.is_email_available(email))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return identity information for the currently authenticated user."""
    return UserResponse.from_user(current_user)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_response(user: User, session: SessionToken, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=SessionResponse(
            access_token=session.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=session.expires_in,
            user=UserResponse.from_user(user),
        ).model_dump(),
    )
    set_auth_cookie(resp, session)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp
