"""Pydantic schemas for the REST and real-time surfaces.

JSON on the wire is camelCase; Python code uses the snake_case field names.
Input models for partial updates forbid unknown fields, so a typo or a
read-only field (``thumbsUp``, ``createdByName``) is rejected instead of being
silently merged.
"""

from datetime import datetime
from math import isfinite
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Role = Literal["admin", "editor", "viewer"]
VoteDirection = Literal["up", "down"]
FeatureStatus = Literal["pending", "in-progress", "completed", "rejected"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def check_coordinates(value: Optional[List[float]]) -> Optional[List[float]]:
    """A coordinate pair is exactly two finite numbers, latitude first."""
    if value is None:
        return None
    if len(value) != 2:
        raise ValueError("coordinates must be [latitude, longitude]")
    if not all(isfinite(n) for n in value):
        raise ValueError("coordinates must be finite numbers")
    return [float(value[0]), float(value[1])]


def fold_position_alias(data):
    """Accept the legacy ``position`` key as input for ``coordinates``."""
    if isinstance(data, dict) and "position" in data:
        data = dict(data)
        position = data.pop("position")
        if data.get("coordinates") is None:
            data["coordinates"] = position
    return data


# =============================================================================
# PROPERTIES
# =============================================================================


class PropertyCreate(CamelModel):
    """Body of POST /properties. Defaults are applied by the store."""

    address: Optional[str] = None
    zoning: Optional[str] = None
    value: Optional[float] = None
    notes: Optional[str] = None
    tax_value: Optional[float] = None
    assessed_value: Optional[float] = None
    cap_rate: Optional[float] = None
    monthly_payment: Optional[float] = None
    coordinates: Optional[List[float]] = None

    @model_validator(mode="before")
    @classmethod
    def _fold_position(cls, data):
        return fold_position_alias(data)

    @field_validator("coordinates")
    @classmethod
    def _coordinates(cls, v):
        return check_coordinates(v)


class PropertyPatch(CamelModel):
    """Body of PUT /properties/:id. Only fields present are written."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    address: Optional[str] = None
    zoning: Optional[str] = None
    value: Optional[float] = None
    notes: Optional[str] = None
    tax_value: Optional[float] = None
    assessed_value: Optional[float] = None
    cap_rate: Optional[float] = None
    monthly_payment: Optional[float] = None
    coordinates: Optional[List[float]] = None

    @model_validator(mode="before")
    @classmethod
    def _fold_position(cls, data):
        return fold_position_alias(data)

    @field_validator("address")
    @classmethod
    def _address(cls, v):
        if v is None or not v.strip():
            raise ValueError("address cannot be blank")
        return v.strip()

    @field_validator("coordinates")
    @classmethod
    def _coordinates(cls, v):
        return check_coordinates(v)

    def changes(self) -> dict:
        """Fields explicitly present in the request, by field name"""
        return self.model_dump(exclude_unset=True)


class PropertyRecord(CamelModel):
    """A property as stored and as sent to clients"""

    id: int
    address: str
    zoning: Optional[str] = None
    value: Optional[float] = None
    notes: str = ""
    tax_value: Optional[float] = None
    assessed_value: Optional[float] = None
    cap_rate: Optional[float] = None
    monthly_payment: Optional[float] = None
    coordinates: Optional[List[float]] = None
    thumbs_up: int = 0
    thumbs_down: int = 0
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    version: int = 1

    def to_event(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class VoteRequest(BaseModel):
    direction: VoteDirection = Field(validation_alias=AliasChoices("direction", "vote"))


# =============================================================================
# AUTH & USERS
# =============================================================================


class TokenClaims(BaseModel):
    """Identity embedded in a session token"""

    id: int
    email: str
    name: Optional[str] = None
    role: Role

    @property
    def display_name(self) -> str:
        return self.name or self.email


class LoginRequest(BaseModel):
    email: str
    credential: str = Field(validation_alias=AliasChoices("credential", "password"))


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    token: str
    user: UserSummary


class UserRecord(CamelModel):
    id: int
    email: str
    username: Optional[str] = None
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    password_hash: str = Field(default="", exclude=True, repr=False)

    def summary(self) -> UserSummary:
        return UserSummary(id=self.id, name=self.name, email=self.email, role=self.role)


def _require_text(value: Optional[str], label: str) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(f"{label} cannot be blank")
    return value


class UserCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    email: str
    name: str
    password: str
    role: Role = "viewer"
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        v = _require_text(v, "email")
        if "@" not in v:
            raise ValueError("email is not valid")
        return v

    @field_validator("name", "password")
    @classmethod
    def _required(cls, v, info):
        return _require_text(v, info.field_name)


class UserPatch(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[Role] = None
    password: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("name", "email", "password")
    @classmethod
    def _not_blank(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return _require_text(v, info.field_name)

    @field_validator("role", "active")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# FEATURE REQUESTS
# =============================================================================


class FeatureRequestCreate(CamelModel):
    description: str = ""
    submitter_email: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("submitterEmail", "submitter_email", "userEmail"),
    )


class FeatureRequestRecord(CamelModel):
    id: int
    description: str
    submitter_email: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FeatureRequestStatusUpdate(BaseModel):
    status: FeatureStatus
