"""
Dependency wiring for the FastAPI app.

Backends are built once per app in ``create_app`` and kept on ``app.state``;
the request dependencies below only read them back.
"""

from __future__ import annotations

import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from civic.config import Settings
from civic.db import DbClient, InMemoryDbClient, PostgresDbClient, UserRecord
from civic.security import decode_access_token
from civic.types import Role
from civic.x_updates import (
    InMemoryPostSource,
    PostSource,
    XApiClient,
    XUpdateSyncService,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def build_db_client(settings: Settings) -> DbClient:
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory database")
        return InMemoryDbClient()
    return PostgresDbClient(settings.database_url)


def build_post_source(settings: Settings) -> PostSource:
    if settings.use_in_memory_backends or not settings.x_api_key:
        logger.info("X_API_KEY not set, X updates sync will fetch nothing")
        return InMemoryPostSource()
    return XApiClient(
        api_key=settings.x_api_key,
        api_url=settings.x_api_url,
        query=settings.x_search_query,
        max_results=settings.x_max_results,
        max_pages=settings.x_max_pages,
    )


def build_sync_service(settings: Settings, db: DbClient) -> XUpdateSyncService:
    return XUpdateSyncService(
        db=db,
        source=build_post_source(settings),
        retention_limit=settings.x_retention_limit,
    )


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db_client(request: Request) -> DbClient:
    return request.app.state.db


def get_sync_service(request: Request) -> XUpdateSyncService:
    return request.app.state.sync_service


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
) -> UserRecord:
    """Resolve the bearer token to a stored user or fail with 401."""
    if credentials is None:
        raise _unauthorized("Access token required")
    try:
        claims = decode_access_token(credentials.credentials, settings.jwt_secret)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.PyJWTError as exc:
        logger.warning("Authentication error: %s", exc)
        raise _unauthorized("Invalid token")

    user_id = claims.get("id")
    user = db.get_user(user_id) if isinstance(user_id, int) else None
    if not user:
        raise _unauthorized("Invalid token")
    return user


def require_roles(*roles: Role):
    """
    Create a dependency that requires the current user to hold one of ``roles``.

    Example:
        @router.post("/refresh")
        def refresh(user: UserRecord = Depends(require_roles(Role.ADMIN))):
            ...
    """

    def role_checker(user: UserRecord = Depends(get_current_user)) -> UserRecord:
        if roles and user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return role_checker
