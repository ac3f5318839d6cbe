"""Feature request routes. Submission is open; triage is admin only."""
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends

from estatemap.schemas import (
    FeatureRequestCreate,
    FeatureRequestRecord,
    FeatureRequestStatusUpdate,
    TokenClaims,
)
from estatemap.services import FeatureRequestDesk

from .deps import get_feature_desk, require_admin

router = APIRouter(tags=["feature-requests"])


@router.post("/feature-request", response_model=FeatureRequestRecord, status_code=201)
async def submit_feature_request(
    data: FeatureRequestCreate,
    background_tasks: BackgroundTasks,
    desk: FeatureRequestDesk = Depends(get_feature_desk),
):
    request = await desk.submit(data.description, data.submitter_email)
    # Mailed after the response is sent
    background_tasks.add_task(desk.notify, request)
    return request


@router.get("/feature-requests", response_model=List[FeatureRequestRecord])
async def list_feature_requests(
    claims: TokenClaims = Depends(require_admin),
    desk: FeatureRequestDesk = Depends(get_feature_desk),
):
    return await desk.list()


@router.get("/feature-requests/{request_id}", response_model=FeatureRequestRecord)
async def get_feature_request(
    request_id: int,
    claims: TokenClaims = Depends(require_admin),
    desk: FeatureRequestDesk = Depends(get_feature_desk),
):
    return await desk.get(request_id)


@router.put("/feature-requests/{request_id}", response_model=FeatureRequestRecord)
async def update_feature_request(
    request_id: int,
    body: FeatureRequestStatusUpdate,
    claims: TokenClaims = Depends(require_admin),
    desk: FeatureRequestDesk = Depends(get_feature_desk),
):
    return await desk.set_status(request_id, body.status)


@router.delete("/feature-requests/{request_id}")
async def delete_feature_request(
    request_id: int,
    claims: TokenClaims = Depends(require_admin),
    desk: FeatureRequestDesk = Depends(get_feature_desk),
):
    await desk.delete(request_id)
    return {"message": "Feature request deleted", "id": request_id}
