from fastapi import APIRouter, Depends, status, Request
from typing import List, Optional

from ..models.db_models import Video
from ..models.inputs import VideoCreate
from ..models.redis_models import SessionUser
from ..services.media_service import MediaService
from .dependencies import get_media_service
from .utilities.limiter import limiter
from .utilities.permissions import Operation, require

router = APIRouter(prefix="/videos", tags=["Videos"])

@router.post("", response_model=Video, status_code=status.HTTP_201_CREATED, summary="Publish a learning video")
@limiter.limit("10/minute")
async def create_video(request: Request, body: VideoCreate, user: SessionUser = Depends(require(Operation.UPLOAD_VIDEO)), service: MediaService = Depends(get_media_service)):
    return await service.create_video(body)

@router.get("", response_model=List[Video], summary="List videos, newest first")
@limiter.limit("60/minute")
async def get_videos(request: Request, study_center_id: Optional[int] = None, is_active: Optional[bool] = None, user: SessionUser = Depends(require(Operation.LIST_VIDEOS)), service: MediaService = Depends(get_media_service)):
    return await service.get_videos(study_center_id=study_center_id, is_active=is_active)
