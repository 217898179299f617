"""
Authflow shared data models.

These models define the structure of the user data exchanged between
the client-side sync and the backend API.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Identity(BaseModel):
    """Read-only projection of the identity provider's user."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Identity provider user identifier", min_length=1)
    email_address: str = Field(..., description="Primary email address")
    first_name: Optional[str] = Field(None, description="Given name")
    last_name: Optional[str] = Field(None, description="Family name")


class UserRecord(BaseModel):
    """Backend user document kept in sync with the identity provider."""

    user_id: str = Field(..., description="Identity provider user identifier", min_length=1)
    email: str = Field(..., description="Primary email address")
    first_name: Optional[str] = Field(None, description="Given name")
    last_name: Optional[str] = Field(None, description="Family name")
    created_at: datetime = Field(..., description="When the backend first saw this user")
    updated_at: datetime = Field(..., description="Last time the record changed")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """Require something that looks like an email address."""
        if "@" not in v:
            raise ValueError(f"Invalid email address: {v}")
        return v.strip().lower()

    def to_identity(self) -> Identity:
        return Identity(
            user_id=self.user_id,
            email_address=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
        )


class SyncUserResponse(BaseModel):
    """Response of POST /api/users/sync."""

    user: UserRecord
    created: bool = Field(False, description="True if the record was created by this call")


class MessageResponse(BaseModel):
    """Error body returned by guarded routes."""

    message: str
