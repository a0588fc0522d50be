"""Channel, video and analytics snapshot models."""

import datetime as dt
from uuid import UUID

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Channel(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """YouTube channel owned by a user."""

    __tablename__ = "channels"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    youtube_channel_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    subscribers: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")


class Video(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Published (or scheduled) video on one of the user's channels."""

    __tablename__ = "videos"

    channel_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    youtube_video_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    likes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    comments: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")


class AnalyticsSnapshot(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Daily metrics for one video, as reported by the analytics workflow."""

    __tablename__ = "analytics"
    __table_args__ = (UniqueConstraint("video_id", "date", name="uq_analytics_video_date"),)

    video_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    watch_time_minutes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    avg_view_duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
