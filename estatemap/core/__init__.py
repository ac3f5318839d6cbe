"""Core modules: config, database, errors, logging, security"""
from .config import Settings, settings
from .errors import (
    AuthError,
    ConflictError,
    EstateMapError,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    NotFound,
    PersistenceError,
    ValidationError,
)

__all__ = [
    'Settings', 'settings',
    'EstateMapError', 'ValidationError', 'AuthError', 'InvalidCredentials',
    'InvalidToken', 'Forbidden', 'NotFound', 'ConflictError', 'PersistenceError',
]
