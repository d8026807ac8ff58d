import logging
from typing import List, Optional

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import Video
from ..models.inputs import VideoCreate
from .base_service import BaseService
from .errors import NotFoundError, InactiveError

logger = logging.getLogger(__name__)


class MediaService(BaseService):
    """Learning videos published by a study centre."""

    async def create_video(self, data: VideoCreate) -> Video:
        async def _create(tx: AsyncPostgresClient) -> Video:
            center = await tx.get_study_center(data.study_center_id)
            if not center:
                raise NotFoundError(f"Study center {data.study_center_id} not found.")
            if not center.is_active:
                raise InactiveError(f"Study center {center.id} is inactive.")
            uploader = await tx.get_user(data.uploaded_by)
            if not uploader:
                raise NotFoundError(f"User {data.uploaded_by} not found.")
            if not uploader.is_active:
                raise InactiveError(f"User {uploader.id} is inactive.")
            return await tx.add_video(data)

        video = await self._run_atomic(_create)
        logger.info(f"Video {video.id} '{video.title}' uploaded by user {video.uploaded_by}.")
        return video

    async def get_videos(self, study_center_id: Optional[int] = None, is_active: Optional[bool] = None) -> List[Video]:
        return await self.db_client.get_videos(study_center_id=study_center_id, is_active=is_active)
