"""User, authentication, and admin-directory schemas."""
import re
from datetime import datetime
from typing import Annotated
from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator
from draftroom.schemas.common import UserRole

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_STRONG_PASSWORD_RE = re.compile(r"^(?=.*[a-zA-Z])(?=.*[0-9])(?=.*[!@#$%^&*])")


def _normalize_email(value: str) -> str:
    if not _EMAIL_RE.match(value):
        raise ValueError("Enter a valid email address")
    return value.lower()


Email = Annotated[str, Field(max_length=255), AfterValidator(_normalize_email)]


# ── Authentication ─────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: Email
    username: str = Field(..., min_length=2, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1)  # email or username
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def _strong_enough(cls, value: str) -> str:
        if not _STRONG_PASSWORD_RE.match(value):
            raise ValueError("Password must contain a letter, a digit and one of !@#$%^&*")
        return value

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("New passwords do not match")
        return self


class PrincipalResponse(BaseModel):
    id: str
    email: str
    username: str
    role: UserRole
    must_change_password: bool

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: PrincipalResponse


# ── Admin directory ────────────────────────────────────────────────────

class UserCreate(BaseModel):
    email: Email
    username: str = Field(..., min_length=2, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole = UserRole.USER


class UserUpdate(BaseModel):
    email: Email | None = None
    username: str | None = Field(None, min_length=2, max_length=100)
    role: UserRole | None = None
    password: str | None = Field(None, min_length=8, max_length=128)
    must_change_password: bool | None = None

    @model_validator(mode="after")
    def _reject_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class UserResponse(BaseModel):
    id: str
    email: str
    username: str
    role: UserRole
    provider: str
    must_change_password: bool
    created_at: datetime
    updated_at: datetime
    project_count: int = 0

    model_config = {"from_attributes": True}
