"""
User Schemas
Pydantic models for user and company requests and responses
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from src.models.user import UserRole


class UserCreate(BaseModel):
    """Schema for an admin creating a user"""
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=200)
    role: UserRole = UserRole.EMPLOYEE
    manager_id: Optional[int] = None


class RoleUpdate(BaseModel):
    role: UserRole


class ManagerUpdate(BaseModel):
    """manager_id None clears the manager"""
    manager_id: Optional[int] = None


class UserResponse(BaseModel):
    """Schema for user response"""
    id: int
    email: EmailStr
    full_name: str
    role: UserRole
    company_id: int
    manager_id: Optional[int] = None
    is_active: bool
    is_first_login: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreatedUserResponse(BaseModel):
    """A created or reset account; the password is also emailed"""
    user: UserResponse
    temporary_password: str


class CompanyResponse(BaseModel):
    id: int
    name: str
    currency: str
    created_at: datetime

    class Config:
        from_attributes = True


class CurrencyUpdate(BaseModel):
    currency: str = Field(..., min_length=3, max_length=3)


class CurrencyResponse(BaseModel):
    code: str
    name: str
    symbol: str
    country: str

    class Config:
        from_attributes = True
