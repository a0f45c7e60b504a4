"""
Admin Schemas

Pydantic models validating input to the admin services.

The password minimum length is supplied through the validation context:

    CreateUserRequest.model_validate(data, context={"password_min_length": 10})
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from rbac_guard.access.codes import is_valid_permission_code
from rbac_guard.auth.passwords import MAX_PASSWORD_BYTES

DEFAULT_PASSWORD_MIN_LENGTH = 8

_WHITESPACE = re.compile(r"\s")


def _require_text(value: Optional[str], label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must not be blank")
    return value.strip()


class CreateUserRequest(BaseModel):
    """User creation request."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(..., max_length=50)
    password: str

    @field_validator("username", mode="before")
    @classmethod
    def username_is_single_word(cls, value: Optional[str]) -> str:
        value = _require_text(value, "username")
        if _WHITESPACE.search(value):
            raise ValueError("username must not contain whitespace")
        return value

    @field_validator("password")
    @classmethod
    def password_is_complex(cls, value: str, info: ValidationInfo) -> str:
        if not value or not value.strip():
            raise ValueError("password must not be blank")
        context = info.context or {}
        min_length = context.get("password_min_length", DEFAULT_PASSWORD_MIN_LENGTH)
        if len(value) < min_length:
            raise ValueError(f"password must be at least {min_length} characters")
        if len(value.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        if not re.search(r"[A-Za-z]", value) or not re.search(r"\d", value):
            raise ValueError("password must contain letters and digits")
        return value


class CreateRoleRequest(BaseModel):
    """Role creation request."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., max_length=50)
    name: str = Field(..., max_length=100)
    description: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def code_not_blank(cls, value: Optional[str]) -> str:
        value = _require_text(value, "role code")
        if _WHITESPACE.search(value):
            raise ValueError("role code must not contain whitespace")
        return value

    @field_validator("name", mode="before")
    @classmethod
    def name_not_blank(cls, value: Optional[str]) -> str:
        return _require_text(value, "role name")


class CreatePermissionRequest(BaseModel):
    """Permission creation request."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., max_length=100)
    description: Optional[str] = None

    @field_validator("code", mode="before")
    @classmethod
    def code_is_resource_action(cls, value: Optional[str]) -> str:
        value = _require_text(value, "permission code")
        if not is_valid_permission_code(value):
            raise ValueError("permission code must have the form RESOURCE:ACTION")
        return value
