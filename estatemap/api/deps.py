"""
FastAPI dependencies

Services live on ``app.state`` (built in the lifespan); these helpers hand
them to route functions and resolve the caller's identity from the bearer
token.
"""
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from estatemap.core.errors import AuthError, ValidationError
from estatemap.core.security import AuthGateway
from estatemap.schemas import TokenClaims
from estatemap.services import FeatureRequestDesk, PropertyStore, UserDirectory

# JWT Bearer token; missing tokens are reported by get_current_claims
security = HTTPBearer(auto_error=False)


def get_auth(request: Request) -> AuthGateway:
    return request.app.state.auth


def get_property_store(request: Request) -> PropertyStore:
    return request.app.state.properties


def get_user_directory(request: Request) -> UserDirectory:
    return request.app.state.users


def get_feature_desk(request: Request) -> FeatureRequestDesk:
    return request.app.state.feature_requests


async def get_optional_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: AuthGateway = Depends(get_auth),
) -> Optional[TokenClaims]:
    if credentials is None:
        return None
    return auth.verify(credentials.credentials)


async def get_current_claims(
    claims: Optional[TokenClaims] = Depends(get_optional_claims),
) -> TokenClaims:
    """
    Dependency to get the authenticated caller

    Usage:
        @router.get("/me")
        async def me(claims: TokenClaims = Depends(get_current_claims)):
            ...
    """
    if claims is None:
        raise AuthError("Access token required")
    return claims


async def require_admin(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    return AuthGateway.require_role(claims, "admin")


def expected_version(if_match: Optional[str] = Header(default=None)) -> Optional[int]:
    """Parse an ``If-Match: "<version>"`` header into a version number"""
    if if_match is None:
        return None
    tag = if_match.strip()
    if tag.startswith("W/"):
        tag = tag[2:]
    tag = tag.strip('"')
    if not tag.isdigit():
        raise ValidationError("If-Match must carry a property version")
    return int(tag)
