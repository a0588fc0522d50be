"""Content router: endpoints open to users and to automation via the service secret."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.auth.service_auth import ServiceAuthContext, require_service_or_owner, require_service_or_user
from src.shared.pagination.pagination import PaginatedResponse, PaginationParams, get_pagination

from .schemas import (
    AnalyticsCreateRequest,
    AnalyticsResponse,
    ChannelCreateRequest,
    ChannelResponse,
    VideoCreateRequest,
    VideoResponse,
)
from .service import ContentService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Content"])


@router.get("/channels", response_model=PaginatedResponse[ChannelResponse])
async def list_channels(
    pagination: PaginationParams = Depends(get_pagination),
    auth: ServiceAuthContext = Depends(require_service_or_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List the acting user's channels."""
    channels, total = await ContentService.list_channels(session, auth.user_id, pagination)
    return PaginatedResponse(
        items=[ChannelResponse.model_validate(c) for c in channels],
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.post("/channels", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_channel(
    data: ChannelCreateRequest,
    auth: ServiceAuthContext = Depends(require_service_or_owner),
    session: AsyncSession = Depends(get_db_session),
):
    """Register a YouTube channel (owners, or automation with the service secret)."""
    channel = await ContentService.create_channel(session, auth.user_id, data)
    await session.commit()
    return channel


@router.get("/videos", response_model=PaginatedResponse[VideoResponse])
async def list_videos(
    channel_id: UUID | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    auth: ServiceAuthContext = Depends(require_service_or_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List videos on the acting user's channels, optionally for one channel."""
    videos, total = await ContentService.list_videos(session, auth.user_id, pagination, channel_id)
    return PaginatedResponse(
        items=[VideoResponse.model_validate(v) for v in videos],
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.post("/videos", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    data: VideoCreateRequest,
    auth: ServiceAuthContext = Depends(require_service_or_owner),
    session: AsyncSession = Depends(get_db_session),
):
    video = await ContentService.create_video(session, auth.user_id, data)
    await session.commit()
    return video


@router.get("/analytics", response_model=PaginatedResponse[AnalyticsResponse])
async def list_analytics(
    video_id: UUID | None = None,
    pagination: PaginationParams = Depends(get_pagination),
    auth: ServiceAuthContext = Depends(require_service_or_user),
    session: AsyncSession = Depends(get_db_session),
):
    snapshots, total = await ContentService.list_analytics(session, auth.user_id, pagination, video_id)
    return PaginatedResponse(
        items=[AnalyticsResponse.model_validate(s) for s in snapshots],
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.post("/analytics", response_model=AnalyticsResponse, status_code=status.HTTP_201_CREATED)
async def record_analytics(
    data: AnalyticsCreateRequest,
    auth: ServiceAuthContext = Depends(require_service_or_owner),
    session: AsyncSession = Depends(get_db_session),
):
    """Record one daily analytics snapshot for a video."""
    snapshot = await ContentService.record_analytics(session, auth.user_id, data)
    await session.commit()
    return snapshot
