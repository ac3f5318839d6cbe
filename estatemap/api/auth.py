"""Login and current-user routes."""
from fastapi import APIRouter, Depends

from estatemap.core.security import AuthGateway
from estatemap.schemas import LoginRequest, LoginResponse, TokenClaims, UserRecord
from estatemap.services import UserDirectory

from .deps import get_auth, get_current_claims, get_user_directory

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, auth: AuthGateway = Depends(get_auth)):
    token, user = await auth.login(body.email, body.credential)
    return LoginResponse(token=token, user=user)


@router.get("/me", response_model=UserRecord)
async def me(
    claims: TokenClaims = Depends(get_current_claims),
    users: UserDirectory = Depends(get_user_directory),
):
    return await users.get(claims.id, include_inactive=False)
