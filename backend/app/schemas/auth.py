"""
Schemas for the authenticated caller and the auth health probe.
"""
from typing import Optional
from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    """The Supabase Auth user behind an access token."""
    id: str = Field(..., description="Supabase auth user id (JWT `sub`)")
    email: str = Field(..., description="Email used to match billing customers")
    full_name: Optional[str] = Field(None, description="From user_metadata.full_name")
    created_at: Optional[str] = Field(None, description="Set when resolved through Supabase Auth")
    email_confirmed_at: Optional[str] = Field(None, description="Set when resolved through Supabase Auth")


class AuthHealthResponse(BaseModel):
    status: str
    service: str
    local_token_verification: bool = Field(
        ..., description="True when tokens are verified with the JWT secret instead of a Supabase call"
    )
