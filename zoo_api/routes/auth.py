"""
Zoo Registry API: Identity Route Handlers
==========================================

What:  Registration, login, current-user and password endpoints, plus the
       user administration endpoints.
How:   Extracts the body, delegates to IdentityService, returns JSON.

Endpoints:
    POST   /api/users                    register            (open)
    GET    /api/users                    list users          (bearer)
    DELETE /api/users/{user_id}          delete user         (bearer)
    POST   /api/auth/login               login               (open)
    GET    /api/auth/me                  current user        (bearer)
    POST   /api/auth/change-password     change password     (bearer)
    POST   /api/auth/reset-password      reset by username   (open, logged)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from zoo_api.dependencies import get_current_user, get_store
from zoo_api.models.user import User
from zoo_api.schemas.auth import (
    ChangePasswordRequest,
    CredentialsRequest,
    DeleteUserResponse,
    RegisterResponse,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from zoo_api.schemas.common import ErrorResponse, MessageResponse
from zoo_api.services.identity_service import identity_service
from zoo_api.store import DocumentStore

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/api/users", tags=["Users"])
auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])

_AUTH_ERRORS = {
    401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
    404: {"description": "Token user no longer exists", "model": ErrorResponse},
}


# ── Users ─────────────────────────────────────────────────────────────────
@users_router.post(
    "",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        409: {"description": "Username already exists", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def register(
    body: CredentialsRequest,
    store: DocumentStore = Depends(get_store),
) -> RegisterResponse:
    """Create an account and return a token for it."""
    return await identity_service.register(store, body.username, body.password)


@users_router.get(
    "",
    response_model=List[UserResponse],
    responses=_AUTH_ERRORS,
    summary="List users (ids and usernames only)",
)
async def list_users(
    _: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> List[UserResponse]:
    return await identity_service.list_users(store)


@users_router.delete(
    "/{user_id}",
    response_model=DeleteUserResponse,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Malformed user id", "model": ErrorResponse},
    },
    summary="Delete a user",
)
async def delete_user(
    user_id: str,
    _: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> DeleteUserResponse:
    deleted = await identity_service.delete_user(store, user_id)
    return DeleteUserResponse(message="User deleted successfully", user=deleted)


# ── Auth ──────────────────────────────────────────────────────────────────
@auth_router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: CredentialsRequest,
    store: DocumentStore = Depends(get_store),
) -> TokenResponse:
    return await identity_service.login(store, body.username, body.password)


@auth_router.get(
    "/me",
    response_model=UserResponse,
    responses=_AUTH_ERRORS,
    summary="The authenticated user",
)
async def current_user(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@auth_router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={
        **_AUTH_ERRORS,
        400: {"description": "Missing field or old password mismatch", "model": ErrorResponse},
    },
    summary="Change the authenticated user's password",
)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
) -> MessageResponse:
    await identity_service.change_password(store, user, body.old_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@auth_router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing field", "model": ErrorResponse},
        404: {"description": "Unknown username", "model": ErrorResponse},
    },
    summary="Reset a password by username (unauthenticated)",
    description=(
        "Replaces the password of the named account without proof of identity. "
        "Every use is logged at WARNING."
    ),
)
async def reset_password(
    body: ResetPasswordRequest,
    store: DocumentStore = Depends(get_store),
) -> MessageResponse:
    await identity_service.reset_password(store, body.username, body.new_password)
    return MessageResponse(message="Password reset successfully")
