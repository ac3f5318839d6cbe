"""Property routes. Reads, edits and votes are public; create needs a token, delete needs admin."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from estatemap.schemas import PropertyCreate, PropertyPatch, PropertyRecord, TokenClaims, VoteRequest
from estatemap.services import PropertyStore

from .deps import expected_version, get_current_claims, get_property_store, require_admin

router = APIRouter(prefix="/properties", tags=["properties"])


def _tag(response: Response, record: PropertyRecord) -> PropertyRecord:
    response.headers["ETag"] = f'"{record.version}"'
    return record


@router.get("", response_model=List[PropertyRecord])
async def list_properties(store: PropertyStore = Depends(get_property_store)):
    return await store.list()


@router.delete("")
async def delete_all_properties(
    claims: TokenClaims = Depends(require_admin),
    store: PropertyStore = Depends(get_property_store),
):
    count = await store.delete_all(claims)
    return {"message": f"Deleted {count} properties", "count": count}


@router.get("/{property_id}", response_model=PropertyRecord)
async def get_property(
    property_id: int,
    response: Response,
    store: PropertyStore = Depends(get_property_store),
):
    return _tag(response, await store.get(property_id))


@router.post("", response_model=PropertyRecord, status_code=201)
async def create_property(
    data: PropertyCreate,
    response: Response,
    claims: TokenClaims = Depends(get_current_claims),
    store: PropertyStore = Depends(get_property_store),
):
    return _tag(response, await store.create(data, claims))


@router.put("/{property_id}", response_model=PropertyRecord)
async def update_property(
    property_id: int,
    patch: PropertyPatch,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    store: PropertyStore = Depends(get_property_store),
):
    return _tag(response, await store.update(property_id, patch, expected_version=version))


@router.delete("/{property_id}")
async def delete_property(
    property_id: int,
    claims: TokenClaims = Depends(require_admin),
    store: PropertyStore = Depends(get_property_store),
):
    await store.delete(property_id, claims)
    return {"message": "Property deleted successfully", "id": property_id}


@router.post("/{property_id}/vote", response_model=PropertyRecord)
async def vote_property(
    property_id: int,
    vote: VoteRequest,
    store: PropertyStore = Depends(get_property_store),
):
    return await store.vote(property_id, vote.direction)
