"""
Feature Request Model

Suggestions submitted from the map UI, triaged by admins.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Text

from estatemap.core.database import Base, utcnow


class FeatureRequestStatus(str, enum.Enum):
    """Feature request lifecycle"""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class FeatureRequest(Base):
    """Feature request submitted by any visitor"""
    __tablename__ = 'feature_requests'

    id = Column(Integer, primary_key=True, index=True)
    description = Column(Text, nullable=False)
    submitter_email = Column(String(120), nullable=True)
    status = Column(String(20), nullable=False, default=FeatureRequestStatus.PENDING.value)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
