"""Request and response models for the session endpoints."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Credentials posted to the login endpoint."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    username: Annotated[str, Field(min_length=1)]
    password: Annotated[str, Field(min_length=1, repr=False)]


class RegistrationRequest(BaseModel):
    """New account posted to the register endpoint."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    username: Annotated[str, Field(min_length=1)]
    password: Annotated[str, Field(min_length=1, repr=False)]
    email: Annotated[str, Field(min_length=3)]


class ChangePasswordRequest(BaseModel):
    """Password change for the authenticated user."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    old_password: Annotated[str, Field(alias="oldPassword", repr=False)]
    new_password: Annotated[str, Field(alias="newPassword", min_length=1, repr=False)]


class PasswordResetRequest(BaseModel):
    """Password reset by email."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    email: Annotated[str, Field(min_length=3)]
    new_password: Annotated[str, Field(alias="newPassword", min_length=1, repr=False)]


class LoginResponse(BaseModel):
    """Login/register response.

    In cookie mode the server may omit the token and set a cookie instead.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    token: str | None = Field(default=None, repr=False)
    expires_in: int | None = Field(default=None, alias="expiresIn")
