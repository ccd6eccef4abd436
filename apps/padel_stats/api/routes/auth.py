"""Authentication route handlers."""

import logging
from typing import Dict, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from padel_stats.api.routes import limiter, INVALID_CREDENTIALS_RESPONSE, to_http_exception
from padel_stats.database.db import get_db_session
from padel_stats.services import auth_service, user_service
from padel_stats.api.auth_dependencies import get_current_user
from padel_stats.models.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
)
from padel_stats.utils.constants import LOGIN_RATE_LIMIT, REGISTER_RATE_LIMIT

logger = logging.getLogger(__name__)
router = APIRouter()


def _issue_token(user: Dict) -> AuthResponse:
    access_token = auth_service.create_access_token(
        data={"user_id": user["id"], "username": user["username"]}
    )
    return AuthResponse(access_token=access_token, user=user_service.public_user_dict(user))


@router.post("/api/auth/register", response_model=AuthResponse, status_code=201)
@limiter.limit(REGISTER_RATE_LIMIT)
async def register(
    request: Request, payload: RegisterRequest, session: AsyncSession = Depends(get_db_session)
):
    """Create an account and return an access token."""
    try:
        email = auth_service.normalize_email(payload.email)
        password_hash = auth_service.hash_password(payload.password)

        user_id = await user_service.create_user(
            session,
            username=payload.username,
            email=email,
            password_hash=password_hash,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        user = await user_service.get_user_by_id(session, user_id)
        return _issue_token(user)
    except Exception as e:
        raise to_http_exception(e, "during registration")


@router.post("/api/auth/login", response_model=AuthResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request, payload: LoginRequest, session: AsyncSession = Depends(get_db_session)
):
    """Login with email and password."""
    try:
        user = await user_service.get_user_by_email(session, payload.email)
        if not user:
            raise INVALID_CREDENTIALS_RESPONSE

        if not auth_service.verify_password(payload.password, user["password_hash"]):
            raise INVALID_CREDENTIALS_RESPONSE

        logger.info(f"User {user['id']} logged in")
        return _issue_token(user)
    except Exception as e:
        raise to_http_exception(e, "during login")


@router.get("/api/auth/me", response_model=Dict[str, Any])
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the current user with the matches they played and their stats."""
    try:
        user = await user_service.get_user_with_stats(session, current_user["id"])
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user
    except Exception as e:
        raise to_http_exception(e, "loading current user")


@router.post("/api/auth/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Change the current user's password after checking the existing one."""
    try:
        if not auth_service.verify_password(payload.current_password, current_user["password_hash"]):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        updated = await user_service.update_user_password(
            session, current_user["id"], auth_service.hash_password(payload.new_password)
        )
        if not updated:
            raise HTTPException(status_code=404, detail="User not found")
        return {"status": "success", "message": "Password updated"}
    except Exception as e:
        raise to_http_exception(e, "changing password")


@router.get("/api/auth/validate")
async def validate_token(current_user: dict = Depends(get_current_user)):
    """Confirm the bearer token is valid and name its user."""
    return {"valid": True, "user": user_service.public_user_dict(current_user)}
