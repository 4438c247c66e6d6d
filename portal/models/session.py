"""Identity and authentication models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Portal roles."""
    PATIENT = "patient"
    DOCTOR = "doctor"
    PHARMACY = "pharmacy"
    ADMIN = "admin"


class Identity(BaseModel):
    """The authenticated user's summary, held only by the session store."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(alias="_id")
    name: str = ""
    email: str = ""
    role: Role
    verified: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class AuthResponse(BaseModel):
    """Successful login/register payload."""
    user: Identity
    token: str = Field(min_length=1)


class LoginRequest(BaseModel):
    """Credentials submitted to the sign-in endpoint."""
    email: str
    password: str
    role: Optional[Role] = None


class RegisterRequest(BaseModel):
    """Registration payload; extra profile fields are passed through."""

    model_config = ConfigDict(extra="allow")

    name: str
    email: str
    password: str
    role: Role = Role.PATIENT
