"""User model and role enumeration."""
import enum
from uuid import uuid4

from sqlalchemy import Column, String, Enum, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from estimator.database import Base


class UserRole(str, enum.Enum):
    """User roles for the estimator."""
    ADMIN = "Admin"
    MANAGER = "Manager"
    ESTIMATOR = "Estimator"
    VIEWER = "Viewer"


class User(Base):
    """User model for authentication and authorization.
    
    Passwords are not stored here; see Credential.
    """
    __tablename__ = "users"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.VIEWER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    
    # Relationships
    login_sessions = relationship(
        "LoginSession", back_populates="user", cascade="all, delete-orphan"
    )
