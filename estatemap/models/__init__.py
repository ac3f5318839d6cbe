"""
Database Models for EstateMap

Includes:
- User: Authentication and authorization
- Property: Map-pinned property records
- FeatureRequest: Suggestions triaged by admins
"""
from .user import User
from .property import Property
from .feature_request import FeatureRequest, FeatureRequestStatus

__all__ = [
    'User',
    'Property',
    'FeatureRequest', 'FeatureRequestStatus',
]
