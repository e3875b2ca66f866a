"""Pydantic schemas for authentication endpoints."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=32)
    password: str = Field(..., min_length=6, max_length=72)
    email: EmailStr | None = None
    bio: str | None = Field(default=None, max_length=500)


class LoginRequest(BaseModel):
    username: str
    password: str


class AuthResponse(BaseModel):
    access_token: str
    user_id: UUID
    token_type: str = "bearer"
    bio: str | None = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    display_name: str | None = None
    email: EmailStr | None = None
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime
    last_active_at: datetime | None = None


__all__ = ["RegisterRequest", "LoginRequest", "AuthResponse", "ProfileResponse"]
