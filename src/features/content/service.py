"""Content service layer (channels, videos, analytics snapshots)."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.shared.pagination.pagination import PaginationParams

from .exceptions import ChannelAlreadyExists, ChannelNotFound, VideoAlreadyExists, VideoNotFound
from .models import AnalyticsSnapshot, Channel, Video
from .schemas import AnalyticsCreateRequest, ChannelCreateRequest, VideoCreateRequest

logger = logging.getLogger(__name__)


async def _paginate(session: AsyncSession, stmt, pagination: PaginationParams) -> tuple[list, int]:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()
    result = await session.execute(stmt.limit(pagination.limit).offset(pagination.offset))
    return list(result.scalars().all()), total


class ContentService:
    """Service for the resources automation workflows report into.

    Every query is scoped to the acting user id (a real user or the service user).
    """

    # Channels

    @staticmethod
    async def list_channels(
        session: AsyncSession, user_id: UUID, pagination: PaginationParams
    ) -> tuple[list[Channel], int]:
        stmt = select(Channel).where(Channel.user_id == user_id).order_by(Channel.created_at.desc())
        return await _paginate(session, stmt, pagination)

    @staticmethod
    async def create_channel(session: AsyncSession, user_id: UUID, data: ChannelCreateRequest) -> Channel:
        """Create a channel.

        Raises:
            ChannelAlreadyExists: If any user already registered this YouTube channel id

        """
        stmt = select(Channel.id).where(Channel.youtube_channel_id == data.youtube_channel_id)
        if (await session.execute(stmt)).first() is not None:
            raise ChannelAlreadyExists()

        channel = Channel(user_id=user_id, name=data.name.strip(), youtube_channel_id=data.youtube_channel_id)
        session.add(channel)
        await session.flush()
        await session.refresh(channel)
        logger.info(f"Channel created: {channel.id} for user {user_id}")
        return channel

    @staticmethod
    async def get_owned_channel(session: AsyncSession, user_id: UUID, channel_id: UUID) -> Channel:
        stmt = select(Channel).where(Channel.id == channel_id, Channel.user_id == user_id)
        channel = (await session.execute(stmt)).scalar_one_or_none()
        if channel is None:
            raise ChannelNotFound()
        return channel

    # Videos

    @staticmethod
    async def list_videos(
        session: AsyncSession, user_id: UUID, pagination: PaginationParams, channel_id: UUID | None = None
    ) -> tuple[list[Video], int]:
        stmt = select(Video).join(Channel, Video.channel_id == Channel.id).where(Channel.user_id == user_id)
        if channel_id is not None:
            stmt = stmt.where(Video.channel_id == channel_id)
        stmt = stmt.order_by(Video.created_at.desc())
        return await _paginate(session, stmt, pagination)

    @staticmethod
    async def create_video(session: AsyncSession, user_id: UUID, data: VideoCreateRequest) -> Video:
        """Create a video on one of the user's channels.

        Raises:
            ChannelNotFound: If the channel does not belong to the user
            VideoAlreadyExists: If the YouTube video id is already tracked

        """
        await ContentService.get_owned_channel(session, user_id, data.channel_id)

        stmt = select(Video.id).where(Video.youtube_video_id == data.youtube_video_id)
        if (await session.execute(stmt)).first() is not None:
            raise VideoAlreadyExists()

        video = Video(
            channel_id=data.channel_id,
            youtube_video_id=data.youtube_video_id,
            title=data.title.strip(),
            description=data.description,
            published_at=data.published_at,
        )
        session.add(video)
        await session.flush()
        await session.refresh(video)
        return video

    @staticmethod
    async def get_owned_video(session: AsyncSession, user_id: UUID, video_id: UUID) -> Video:
        stmt = (
            select(Video)
            .join(Channel, Video.channel_id == Channel.id)
            .where(Video.id == video_id, Channel.user_id == user_id)
        )
        video = (await session.execute(stmt)).scalar_one_or_none()
        if video is None:
            raise VideoNotFound()
        return video

    # Analytics

    @staticmethod
    async def list_analytics(
        session: AsyncSession, user_id: UUID, pagination: PaginationParams, video_id: UUID | None = None
    ) -> tuple[list[AnalyticsSnapshot], int]:
        stmt = (
            select(AnalyticsSnapshot)
            .join(Video, AnalyticsSnapshot.video_id == Video.id)
            .join(Channel, Video.channel_id == Channel.id)
            .where(Channel.user_id == user_id)
        )
        if video_id is not None:
            stmt = stmt.where(AnalyticsSnapshot.video_id == video_id)
        stmt = stmt.order_by(AnalyticsSnapshot.date.desc())
        return await _paginate(session, stmt, pagination)

    @staticmethod
    async def record_analytics(session: AsyncSession, user_id: UUID, data: AnalyticsCreateRequest) -> AnalyticsSnapshot:
        """Store the day's numbers for a video, replacing an earlier report for the same day."""
        await ContentService.get_owned_video(session, user_id, data.video_id)

        stmt = select(AnalyticsSnapshot).where(
            AnalyticsSnapshot.video_id == data.video_id, AnalyticsSnapshot.date == data.date
        )
        snapshot = (await session.execute(stmt)).scalar_one_or_none()
        if snapshot is None:
            snapshot = AnalyticsSnapshot(video_id=data.video_id, date=data.date)
            session.add(snapshot)

        snapshot.views = data.views
        snapshot.watch_time_minutes = data.watch_time_minutes
        snapshot.avg_view_duration_seconds = data.avg_view_duration_seconds
        await session.flush()
        await session.refresh(snapshot)
        return snapshot
