from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.models.base import Base, TimestampMixin
from learnhub.models.enums import TranscodingStatus


class TranscodingJob(Base, TimestampMixin):
    """
    A video submitted to the managed transcoding service.

    The service does the work; this row only tracks the job id and the
    HLS output location so status can be polled.
    """

    __tablename__ = "transcoding_jobs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    uploaded_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    content_id: Mapped[int | None] = mapped_column(
        ForeignKey("contents.id", ondelete="SET NULL"), index=True
    )

    external_job_id: Mapped[str | None] = mapped_column(String(100), unique=True, index=True)
    source_key: Mapped[str] = mapped_column(String(500), nullable=False)
    output_prefix: Mapped[str] = mapped_column(String(500), nullable=False)
    playback_url: Mapped[str | None] = mapped_column(String(500))

    status: Mapped[TranscodingStatus] = mapped_column(
        Enum(TranscodingStatus), default=TranscodingStatus.SUBMITTED, nullable=False
    )
    error_message: Mapped[str | None] = mapped_column(Text)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
