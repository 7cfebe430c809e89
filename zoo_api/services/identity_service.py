"""
Zoo Registry API: Identity & Session Service
=============================================

What:  Owns user credential records, issues and verifies bearer tokens, and
       makes the authorization decision for protected endpoints.
How:   bcrypt hashes (salted, cost factor from settings) and stateless HS256
       tokens from `zoo_api.security`; user documents through DocumentStore.
Who:   Called by the auth routes and by the `get_current_user` dependency.

Credential Lifecycle:
    Register ──▶ Login ──▶ Authorize (every protected request)
                   │
                   ├──▶ ChangePassword (authorized, knows old password)
                   └──▶ ResetPassword  (UNAUTHENTICATED, knows username only)

    ResetPassword lets anyone who knows a username replace that account's
    password. It is kept open because existing clients rely on it, and every
    use is logged at WARNING. Put a possession proof (mailed reset token,
    admin approval) in front of it before exposing the service publicly.

Authorization:
    The token's `sub` claim is re-resolved against the store on every
    request; the denormalized `username` claim is never trusted. A token for
    an account deleted after issuance therefore fails with NotFoundError even
    though its signature and expiry are still valid.

Security Note:
    bcrypt runs in the threadpool so a hash never blocks the event loop.
    Plaintext passwords, hashes and tokens are never logged.
"""

import logging
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from zoo_api.exceptions import AuthError, ConflictError, NotFoundError, ValidationError
from zoo_api.models.user import User
from zoo_api.models._fields import require_text
from zoo_api.schemas.auth import RegisterResponse, TokenResponse, UserResponse
from zoo_api.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from zoo_api.store import DocumentStore, is_valid_id

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Same kind and message for "no such user" and "wrong password"
INVALID_CREDENTIALS = "Invalid credentials"


def _require(**fields: Optional[str]) -> None:
    """Raise ValidationError naming the first missing or blank field."""
    for name, value in fields.items():
        require_text(name, value)


def _to_user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, username=user.username)


class IdentityService:
    """
    Business logic for accounts and sessions.

    Stateless: every method receives the request's DocumentStore, so one
    module-level instance serves all requests.
    """

    async def register(
        self,
        store: DocumentStore,
        username: Optional[str],
        password: Optional[str],
    ) -> RegisterResponse:
        """
        Create an account and issue its first token.

        Raises:
            ValidationError: Missing username/password, or password over 72 bytes.
            ConflictError:   Username already taken.
        """
        _require(username=username, password=password)

        if await store.find_one(User, username=username) is not None:
            raise ConflictError("Username already exists", field="username")

        password_hash = await run_in_threadpool(hash_password, password)
        # A concurrent registration of the same name loses at the unique
        # index; the store turns that into ConflictError too
        user = await store.insert(User(username=username, password_hash=password_hash))
        logger.info("User registered: %s", user.id)

        token = create_access_token(user.id, user.username)
        return RegisterResponse(token=token, user=_to_user_response(user))

    async def login(
        self,
        store: DocumentStore,
        username: Optional[str],
        password: Optional[str],
    ) -> TokenResponse:
        """
        Exchange credentials for a bearer token.

        Raises:
            ValidationError: Missing username/password.
            AuthError:       Unknown username or wrong password (indistinguishable).
        """
        _require(username=username, password=password)

        user = await store.find_one(User, username=username)
        if user is None:
            logger.warning("Failed login: unknown username")
            raise AuthError(INVALID_CREDENTIALS)

        if not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.warning("Failed login for user %s: wrong password", user.id)
            raise AuthError(INVALID_CREDENTIALS)

        logger.info("User logged in: %s", user.id)
        return TokenResponse(token=create_access_token(user.id, user.username))

    async def authorize(self, store: DocumentStore, authorization: Optional[str]) -> User:
        """
        Resolve the Authorization header to the current user record.

        What:    Validates `Bearer <token>`, verifies signature and expiry, then
                 re-fetches the user by the token's `sub` claim.
        Who:     `zoo_api.dependencies.get_current_user`.

        Raises:
            AuthError:     Header missing, wrong scheme, empty/invalid/expired token.
            NotFoundError: The token's user no longer exists.
        """
        if not authorization:
            raise AuthError("Authorization header is missing")
        if not authorization.startswith(BEARER_PREFIX):
            raise AuthError("Authorization header must use the Bearer scheme")

        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise AuthError("Bearer token is missing")

        claims = decode_access_token(token)
        user = await store.find_by_id(User, claims["sub"])
        if user is None:
            raise NotFoundError(resource="user")
        return user

    async def change_password(
        self,
        store: DocumentStore,
        user: User,
        old_password: Optional[str],
        new_password: Optional[str],
    ) -> None:
        """
        Replace the password of an authorized user who knows the current one.

        Raises:
            ValidationError: Missing field, wrong old password, new password too long.
        """
        _require(oldPassword=old_password, newPassword=new_password)

        if not await run_in_threadpool(verify_password, old_password, user.password_hash):
            logger.warning("Password change rejected for user %s: old password mismatch", user.id)
            raise ValidationError("Old password is incorrect", field="oldPassword")

        new_hash = await run_in_threadpool(hash_password, new_password)
        updated = await store.update_by_id(User, user.id, {"password_hash": new_hash})
        if updated is None:
            raise NotFoundError(resource="user", resource_id=user.id)
        logger.info("Password changed for user %s", user.id)

    async def reset_password(
        self,
        store: DocumentStore,
        username: Optional[str],
        new_password: Optional[str],
    ) -> None:
        """
        Overwrite a user's password knowing only the username.

        Raises:
            ValidationError: Missing field or new password too long.
            NotFoundError:   Unknown username.
        """
        _require(username=username, newPassword=new_password)

        user = await store.find_one(User, username=username)
        if user is None:
            raise NotFoundError(resource="user")

        new_hash = await run_in_threadpool(hash_password, new_password)
        await store.update_by_id(User, user.id, {"password_hash": new_hash})
        logger.warning("Unauthenticated password reset performed for user %s", user.id)

    async def list_users(self, store: DocumentStore) -> List[UserResponse]:
        users = await store.find(User)
        return [_to_user_response(user) for user in users]

    async def delete_user(self, store: DocumentStore, user_id: str) -> UserResponse:
        """
        Delete an account. No cascading effects; outstanding tokens for the
        account stop authorizing because Authorize re-fetches the user.

        Raises:
            ValidationError: `user_id` is not a well-formed id.
            NotFoundError:   No such user.
        """
        if not is_valid_id(user_id):
            raise ValidationError("Invalid ID", field="user_id")

        user = await store.delete_by_id(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        logger.info("User deleted: %s", user_id)
        return _to_user_response(user)


# ── Singleton Instance ────────────────────────────────────────────────────
identity_service = IdentityService()
