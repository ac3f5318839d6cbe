"""
Feature Request Desk

Anyone may submit a request; admins move it through
pending -> in-progress -> completed / rejected, or delete it.
"""
import logging
from typing import List, Optional

from estatemap.core.errors import NotFound, ValidationError
from estatemap.models import FeatureRequestStatus
from estatemap.schemas import FeatureRequestRecord
from estatemap.storage import PersistenceAdapter

logger = logging.getLogger(__name__)

STATUSES = tuple(status.value for status in FeatureRequestStatus)


class FeatureRequestDesk:
    def __init__(self, storage: PersistenceAdapter, mailer=None):
        self.storage = storage
        self.mailer = mailer

    async def submit(self, description: str, submitter_email: Optional[str] = None) -> FeatureRequestRecord:
        description = (description or "").strip()
        if not description:
            raise ValidationError("Feature description is required")
        submitter_email = (submitter_email or "").strip() or None

        request = await self.storage.insert_feature_request({
            'description': description,
            'submitter_email': submitter_email,
            'status': FeatureRequestStatus.PENDING.value,
        })
        logger.info("Feature request %s submitted", request.id)
        return request

    async def notify(self, request: FeatureRequestRecord) -> bool:
        """Mail the request to the maintainers; False when it was not sent"""
        if self.mailer is None:
            return False
        return await self.mailer.send_feature_request(request)

    async def list(self) -> List[FeatureRequestRecord]:
        return await self.storage.list_feature_requests()

    async def get(self, request_id: int) -> FeatureRequestRecord:
        request = await self.storage.get_feature_request(request_id)
        if request is None:
            raise NotFound("Feature request not found")
        return request

    async def set_status(self, request_id: int, status: str) -> FeatureRequestRecord:
        if status not in STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(STATUSES)}")
        request = await self.storage.update_feature_request_status(request_id, status)
        logger.info("Feature request %s marked %s", request_id, status)
        return request

    async def delete(self, request_id: int) -> int:
        if not await self.storage.delete_feature_request(request_id):
            raise NotFound("Feature request not found")
        return request_id
