"""Password credential model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from estimator.database import Base


class Credential(Base):
    """One password hash per username, kept apart from the user record."""
    __tablename__ = "credentials"
    
    username = Column(String(50), primary_key=True)
    password_hash = Column(String(255), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
