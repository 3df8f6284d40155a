from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TokenPair(BaseModel):
    """Access and refresh tokens."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    role: str = Field(..., description="Role of the authenticated principal")
    school_code: Optional[str] = Field(None, description="School the principal belongs to; null for super-admins")


class RefreshRequest(BaseModel):
    """Request to refresh an access token."""
    refresh_token: str = Field(..., description="Refresh token")


class PrincipalRead(BaseModel):
    """Claims of the authenticated caller."""
    id: str = Field(..., description="User ID (tenant user or super-admin)")
    role: str = Field(..., description="Role name")
    school_code: Optional[str] = Field(None, description="School code; null for super-admins")
    email: Optional[str] = Field(None, description="Email, when known")
    name: Optional[str] = Field(None, description="Display name")
