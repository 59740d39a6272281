"""
Registration and login.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from civic.config import Settings
from civic.db import DbClient, DuplicateRecordError, UserRecord
from civic.dependencies import get_app_settings, get_db_client
from civic.schemas import (
    ApiResponse,
    AuthData,
    LoginRequest,
    RegisterRequest,
    UserOut,
    success_response,
)
from civic.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()

USER_EXISTS = "User with this email or username already exists"
INVALID_CREDENTIALS = "Invalid credentials"


def _auth_payload(user: UserRecord, settings: Settings) -> AuthData:
    token = create_access_token(
        {"id": user.id, "email": user.email, "role": user.role.value},
        settings.jwt_secret,
        expires_hours=settings.jwt_expires_hours,
    )
    return AuthData(user=UserOut(**user.as_dict()), token=token)


@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    if db.find_user_by_email_or_username(payload.email, payload.username):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=USER_EXISTS)
    try:
        user = db.create_user(
            email=payload.email,
            username=payload.username,
            password_hash=hash_password(payload.password),
        )
    except DuplicateRecordError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=USER_EXISTS)

    logger.info("User registered: %s", user.email)
    return success_response(
        _auth_payload(user, settings), message="User registered successfully"
    )


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    response_model_exclude_unset=True,
)
def login(
    payload: LoginRequest,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    user = db.get_user_by_email(payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS
        )

    logger.info("User logged in: %s", user.email)
    return success_response(_auth_payload(user, settings), message="Login successful")
