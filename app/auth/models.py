# =============================================================================
# app/auth/models.py - Auth Models
# =============================================================================

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class TokenPayload(BaseModel):
    """Claims of a verified Supabase access token that the API reads."""
    model_config = ConfigDict(extra="ignore")

    sub: str
    aud: str
    exp: int
    email: Optional[str] = None
    role: Optional[str] = None  # Supabase role ("authenticated"), not parent/tutor


class AuthUser(BaseModel):
    """Who the token belongs to, before any database lookup."""
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None


class Profile(BaseModel):
    """
    The caller's row in the parents table.

    Tutor and parents share the table: `role` tells them apart and each
    parent points at the tutor through `tutor_id`.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: UUID
    user_id: Optional[UUID] = None
    tutor_id: Optional[UUID] = None
    name: str
    email: str
    phone: Optional[str] = None
    role: str = "parent"
    preferences: dict[str, Any] = {}
    prepaid_subjects: list[str] = []
    created_at: Optional[datetime] = None

    @property
    def is_tutor(self) -> bool:
        return self.role == "tutor"
