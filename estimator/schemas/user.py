"""User schemas for request/response validation."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr

from estimator.models.user import UserRole


class UserBase(BaseModel):
    """Base user schema."""
    username: str
    email: EmailStr


class UserCreate(UserBase):
    """Schema for creating a user."""
    password: str
    role: UserRole = UserRole.VIEWER


class UserUpdate(BaseModel):
    """Schema for updating a user."""
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserResponse(UserBase):
    """Schema for user response."""
    id: str
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True


class CurrentUserResponse(UserResponse):
    """Session user with the permissions its role grants."""
    permissions: List[str] = []


class Token(BaseModel):
    """JWT token schema."""
    access_token: str
    token_type: str


class PasswordChange(BaseModel):
    """Schema for an administrator setting a user's password."""
    new_password: str
