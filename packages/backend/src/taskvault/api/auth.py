"""Auth API — registration, login, token refresh, logout.

Learn: Routes for user authentication:
- POST /auth/register → create account → tokens + user
- POST /auth/login → email/password → tokens + user
- POST /auth/refresh → refresh token → new access token
- POST /auth/logout → acknowledgement only (tokens are stateless)
- GET /auth/me → current user info (requires access token)

Routes translate HTTP to AuthService calls. Errors raised by the service
are turned into envelopes by the handlers in taskvault.errors.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault.auth.dependencies import CurrentIdentity, get_current_user
from taskvault.db.engine import get_db
from taskvault.schemas.auth import (
    AccessTokenOnly,
    AuthTokens,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    UserRead,
)
from taskvault.schemas.common import Envelope
from taskvault.services.auth_service import AuthResult, AuthService

router = APIRouter(prefix="/auth")


def _auth_svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


def _tokens(result: AuthResult) -> AuthTokens:
    return AuthTokens(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=UserRead.model_validate(result.user),
    )


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=Envelope[AuthTokens], status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_auth_svc)):
    """Create a new user account and log it in."""
    result = await svc.register(body.email, body.password)
    return Envelope(message="User registered successfully", data=_tokens(result))


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=Envelope[AuthTokens])
async def login(body: LoginRequest, svc: AuthService = Depends(_auth_svc)):
    """Login with email and password → JWT tokens."""
    result = await svc.login(body.email, body.password)
    return Envelope(message="Login successful", data=_tokens(result))


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=Envelope[AccessTokenOnly])
async def refresh(body: RefreshRequest, svc: AuthService = Depends(_auth_svc)):
    """Exchange a refresh token for a new access token."""
    access_token = await svc.refresh(body.refresh_token)
    return Envelope(
        message="Token refreshed successfully",
        data=AccessTokenOnly(access_token=access_token),
    )


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout", response_model=Envelope[None])
async def logout(svc: AuthService = Depends(_auth_svc)):
    """Acknowledge logout. The client is responsible for dropping its tokens."""
    await svc.logout()
    return Envelope(message="Logged out successfully")


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=Envelope[UserRead])
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    """Get the current authenticated user's info."""
    user = await svc.get_user(identity.user_id)
    return Envelope(data=UserRead.model_validate(user))
