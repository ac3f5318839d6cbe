"""
Domain services

- PropertyStore: property CRUD and votes, with live fan-out
- UserDirectory: admin user management
- FeatureRequestDesk: feature request lifecycle
"""
from .feature_requests import FeatureRequestDesk
from .mailer import FeatureRequestMailer
from .properties import PropertyStore
from .users import UserDirectory

__all__ = [
    'PropertyStore',
    'UserDirectory',
    'FeatureRequestDesk', 'FeatureRequestMailer',
]
