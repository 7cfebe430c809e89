"""
Zoo Registry API: Identity Request/Response Schemas
====================================================

What:  Request bodies and responses for registration, login and the
       credential lifecycle endpoints.
How:   Request fields are Optional on purpose. Presence is checked by
       IdentityService so a missing field yields the same 400
       `validation_error` body whether it came over HTTP or not.
       Password bodies accept the camelCase names existing clients send
       (`oldPassword`, `newPassword`) as well as snake_case.

Security Note:
    No response model has a password or hash field.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CredentialsRequest(BaseModel):
    """Body of POST /api/users (register) and POST /api/auth/login."""
    username: Optional[str] = Field(default=None, description="Account name (case-sensitive)")
    password: Optional[str] = Field(default=None, description="Plaintext password")


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: Optional[str] = Field(default=None, alias="oldPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = Field(default=None)
    new_password: Optional[str] = Field(default=None, alias="newPassword")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    """Public projection of a user: never includes the password hash."""
    id: str = Field(description="User identifier")
    username: str = Field(description="Account name")

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    """
    What:  Result of a successful login.
    How:   Send the token back as `Authorization: Bearer <token>`.
    """
    token: str = Field(description="Signed bearer token (HS256 JWT)")
    token_type: str = Field(default="bearer")


class RegisterResponse(BaseModel):
    token: str = Field(description="Bearer token for the new account")
    user: UserResponse


class DeleteUserResponse(BaseModel):
    message: str
    user: UserResponse
