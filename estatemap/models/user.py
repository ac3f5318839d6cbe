"""
User Model

Map users with role-based permissions. Users are never hard-deleted;
``active`` is cleared instead.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime

from estatemap.core.database import Base, utcnow


class User(Base):
    """Application user"""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(120), unique=True, nullable=False, index=True)
    username = Column(String(80), unique=True, nullable=True)
    name = Column(String(100), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    password_hash = Column(String(256), nullable=False)

    # Role: admin, editor, viewer
    role = Column(String(20), nullable=False, default='viewer')
    active = Column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} ({self.role})>"
