"""
Error Taxonomy

Every failure the API reports maps to one of these exceptions. Each carries a
stable machine-readable ``kind`` and the HTTP status it is rendered with.
"""
from typing import Optional


class EstateMapError(Exception):
    """Base exception for all application errors"""
    kind = "error"
    status_code = 500

    def __init__(self, message: str, kind: Optional[str] = None):
        self.message = message
        if kind:
            self.kind = kind
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(EstateMapError):
    """Malformed or missing required input"""
    kind = "validation_error"
    status_code = 400


class AuthError(EstateMapError):
    """Missing, invalid or expired credentials"""
    kind = "auth_error"
    status_code = 401


class InvalidCredentials(AuthError):
    kind = "invalid_credentials"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class InvalidToken(AuthError):
    kind = "invalid_token"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class Forbidden(EstateMapError):
    """Valid token, insufficient role"""
    kind = "forbidden"
    status_code = 403


class NotFound(EstateMapError):
    """Referenced entity does not exist"""
    kind = "not_found"
    status_code = 404


class ConflictError(EstateMapError):
    """Uniqueness violation or stale write"""
    kind = "conflict"
    status_code = 409


class PersistenceError(EstateMapError):
    """Storage unreachable or failed"""
    kind = "persistence_error"
    status_code = 500

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message)
