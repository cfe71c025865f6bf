import re
import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

USERNAME_RE = re.compile(r"^[a-z0-9_.]{3,30}$")


def normalize_username(value: str) -> str:
    """Lower-case a handle and check it against USERNAME_RE."""
    value = value.strip().lower()
    if not USERNAME_RE.match(value):
        raise ValueError("Username must be 3-30 characters: letters, digits, _ or .")
    return value


class ProfileResponse(BaseModel):
    id: uuid.UUID
    name: str
    username: str
    bio: str | None
    profile_picture_url: str | None
    friends_count: int
    recommendations_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class MeResponse(ProfileResponse):
    email: str
    preferences: list[str] | None = None


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    username: str | None = Field(default=None, max_length=30)
    bio: str | None = Field(default=None, max_length=500)
    profile_picture_url: str | None = Field(default=None, max_length=1024)
    preferences: list[str] | None = Field(default=None, max_length=20)

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str | None) -> str | None:
        return normalize_username(v) if v is not None else v
