"""Authentication endpoints (/api/auth/*)."""
import logging

from fastapi import APIRouter, HTTPException, Depends, Request, status

from api.auth import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from api.config import settings
from api.database import Database, UserAlreadyExistsError
from api.db_instance import get_db
from api.models import (
    UserSignup,
    UserLogin,
    UserProfile,
    SignupResponse,
    TokenResponse,
    RefreshTokenRequest,
)

from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

router = APIRouter(prefix="/api/auth", tags=["authentication"])


def _issue_tokens(user: dict) -> TokenResponse:
    access_token = create_access_token(user["id"], user["email"], user["role"])
    refresh_token, _ = create_refresh_token(user["id"])
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.access_token_expire_minutes * 60
    )


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")  # Rate limit: 5 signups per minute per IP
async def signup(request: Request, user_data: UserSignup, db: Database = Depends(get_db)):
    """Create a user account and log it in."""
    password_hash = hash_password(user_data.password)
    try:
        user = await db.create_user(
            user_data.email,
            password_hash,
            first_name=user_data.first_name,
            last_name=user_data.last_name,
        )
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return SignupResponse(user=UserProfile(**user), tokens=_issue_tokens(user))


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")  # Rate limit: 10 login attempts per minute per IP
async def login(request: Request, credentials: UserLogin, db: Database = Depends(get_db)):
    """Login and get access token."""
    user = await db.get_user_by_email(credentials.email)

    if not user or not verify_password(credentials.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account is disabled")

    logger.info(f"User {user['id']} logged in")
    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(token_request: RefreshTokenRequest, db: Database = Depends(get_db)):
    """Exchange a refresh token for a new token pair."""
    payload = decode_token(token_request.refresh_token)
    if not payload or payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = await db.get_user(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account is disabled")

    return _issue_tokens(user)
