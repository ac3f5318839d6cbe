"""User management routes (admin only)."""
from typing import List

from fastapi import APIRouter, Depends

from estatemap.schemas import TokenClaims, UserCreate, UserPatch, UserRecord
from estatemap.services import UserDirectory

from .deps import get_user_directory, require_admin

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserRecord])
async def list_users(
    claims: TokenClaims = Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
):
    return await users.list()


@router.post("", response_model=UserRecord, status_code=201)
async def create_user(
    data: UserCreate,
    claims: TokenClaims = Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
):
    return await users.create(data)


@router.get("/{user_id}", response_model=UserRecord)
async def get_user(
    user_id: int,
    claims: TokenClaims = Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
):
    return await users.get(user_id)


@router.put("/{user_id}", response_model=UserRecord)
async def update_user(
    user_id: int,
    patch: UserPatch,
    claims: TokenClaims = Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
):
    return await users.update(user_id, patch, claims)


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    claims: TokenClaims = Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
):
    await users.deactivate(user_id, claims)
    return {"message": "User deleted successfully", "id": user_id}
