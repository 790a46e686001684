"""
Authentication Schemas
Pydantic models for authentication requests and responses
"""

from pydantic import BaseModel, EmailStr, Field


class Token(BaseModel):
    """JWT token response"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    """Exchange a refresh token for a new token pair"""
    refresh_token: str


class SignupRequest(BaseModel):
    """Company signup: creates the company and its first admin"""
    company_name: str = Field(..., min_length=1, max_length=200)
    currency: str = Field(..., min_length=3, max_length=3)
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)


class ChangePasswordRequest(BaseModel):
    """Password change for the logged-in user"""
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=100)
