"""Pydantic models (schemas) validating the input/output data of the user service."""

import re
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic.networks import validate_email

from .models import UserRole, UserStatus

BIRTH_DATE_FORMAT = "%d/%m/%Y"
_BIRTH_DATE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")


def validate_birth_date(value: str) -> str:
    """Accepts only real calendar dates written as DD/MM/YYYY."""
    if not _BIRTH_DATE_RE.match(value):
        raise ValueError("birthDate must use the DD/MM/YYYY format")
    try:
        datetime.strptime(value, BIRTH_DATE_FORMAT)
    except ValueError:
        raise ValueError("birthDate is not a valid calendar date")
    return value


def _check_email(value: str) -> str:
    # Validated like EmailStr, but stored exactly as given: uniqueness is case-sensitive.
    validate_email(value)
    return value


EmailAddress = Annotated[str, AfterValidator(_check_email)]


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python, readable from ORM objects."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


# --- User schemas ---

class UserCreate(CamelModel):
    """Fields accepted by the admin 'create user' action."""
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    email: EmailAddress
    birth_date: str
    phone: Optional[str] = None
    role: UserRole = UserRole.USER
    avatar: Optional[str] = None
    # Write-only: hashed before storage, never returned.
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("birth_date")
    @classmethod
    def check_birth_date(cls, value: str) -> str:
        return validate_birth_date(value)


class UserUpdate(CamelModel):
    """
    Partial update (patch). Only the attributes present in the request are applied;
    keys outside this fixed set (for example `id`) are ignored.
    """
    name: Optional[str] = Field(None, min_length=1)
    username: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailAddress] = None
    birth_date: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    avatar: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("birth_date")
    @classmethod
    def check_birth_date(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return validate_birth_date(value)

    def changes(self) -> dict:
        """Only the fields the caller actually supplied."""
        return self.model_dump(exclude_unset=True)


class UserResponse(CamelModel):
    """A user as exposed to clients (never includes the password hash)."""
    id: int
    name: str
    username: str
    email: str
    avatar: Optional[str] = None
    role: UserRole
    birth_date: str
    phone: Optional[str] = None
    status: UserStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserPage(CamelModel):
    """One page of users ordered by ascending id."""
    data: List[UserResponse]
    has_more: bool
    total: int
    page: int
    page_size: int


class DeleteResponse(CamelModel):
    message: str
    user: UserResponse


# --- Authentication schemas ---

class LoginRequest(CamelModel):
    email: EmailAddress
    password: str = Field(..., min_length=1)


class RegisterRequest(CamelModel):
    """Self-registration; the account always starts as an active 'User'."""
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    email: EmailAddress
    password: str = Field(..., min_length=6, description="At least 6 characters")
    birth_date: str
    phone: Optional[str] = None

    @field_validator("birth_date")
    @classmethod
    def check_birth_date(cls, value: str) -> str:
        return validate_birth_date(value)


class AuthResponse(CamelModel):
    """JWT token plus the authenticated user (password stripped)."""
    token: str
    user: UserResponse


class TokenPayload(CamelModel):
    """Decoded payload of a valid JWT."""
    sub: Optional[str] = None
    exp: Optional[int] = None
    email: Optional[str] = None
    role: Optional[str] = None
    name: Optional[str] = None
    username: Optional[str] = None
