from datetime import datetime

from pydantic import Field

from learnhub.models.enums import TranscodingStatus
from learnhub.schemas.base import BaseSchema


class UploadResponse(BaseSchema):
    url: str
    key: str
    content_type: str
    size: int


class PresignedUploadRequest(BaseSchema):
    filename: str = Field(min_length=1, max_length=255)
    content_type: str
    folder: str = Field(default="uploads", pattern=r"^[a-z0-9_\-/]+$")


class PresignedUploadResponse(BaseSchema):
    upload_url: str
    key: str
    public_url: str
    expires_in: int


class TranscodingJobResponse(BaseSchema):
    id: int
    external_job_id: str | None = None
    content_id: int | None = None
    source_key: str
    output_prefix: str
    playback_url: str | None = None
    status: TranscodingStatus
    error_message: str | None = None
    completed_at: datetime | None = None
    created_at: datetime


class VideoUploadResponse(BaseSchema):
    upload: UploadResponse
    job: TranscodingJobResponse
