"""Pydantic models for API request/response."""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Request model for user registration. Field rules live in services.validation."""
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    """Request model for user login."""
    email: str
    password: str


class UserResponse(BaseModel):
    """Public user projection. Never carries the password hash."""
    id: str = Field(..., description="User ID")
    name: str
    email: str


class ValidationErrorDetail(BaseModel):
    """Body of the ``detail`` field on a 400 validation response."""
    message: str = "Validation failed"
    errors: dict[str, str] = Field(default_factory=dict, description="Per-field error messages")
