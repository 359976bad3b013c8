import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, UploadFile, status
from starlette.concurrency import run_in_threadpool

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import AdminUser, AppSettings, Now
from learnhub.core.exceptions import ValidationError
from learnhub.schemas import (
    ApiResponse,
    PresignedUploadRequest,
    PresignedUploadResponse,
    TranscodingJobResponse,
    UploadResponse,
    VideoUploadResponse,
    ok,
)
from learnhub.services.media_service import MediaConvert, TranscodingService
from learnhub.services.storage_service import Storage, read_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("/image", response_model=ApiResponse[UploadResponse], status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: Annotated[UploadFile, File()],
    admin: AdminUser,
    storage: Storage,
    settings: AppSettings,
):
    """Upload an image to S3."""
    content = await read_upload(file, settings.allowed_image_types_list, settings.max_image_size_mb)
    key, url = await run_in_threadpool(
        storage.upload_file, content, file.filename or "image", "images", file.content_type
    )
    return ok(
        {"url": url, "key": key, "content_type": file.content_type, "size": len(content)},
        "Image uploaded successfully",
    )


@router.post("/document", response_model=ApiResponse[UploadResponse], status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: Annotated[UploadFile, File()],
    admin: AdminUser,
    storage: Storage,
    settings: AppSettings,
):
    content = await read_upload(
        file, settings.allowed_document_types_list, settings.max_document_size_mb
    )
    key, url = await run_in_threadpool(
        storage.upload_file, content, file.filename or "document", "documents", file.content_type
    )
    return ok(
        {"url": url, "key": key, "content_type": file.content_type, "size": len(content)},
        "Document uploaded successfully",
    )


@router.post("/video", response_model=ApiResponse[VideoUploadResponse], status_code=status.HTTP_201_CREATED)
async def upload_video(
    file: Annotated[UploadFile, File()],
    admin: AdminUser,
    db: DatabaseSession,
    storage: Storage,
    mediaconvert: MediaConvert,
    settings: AppSettings,
    content_id: Annotated[int | None, Form()] = None,
):
    """
    Upload a video and start HLS transcoding.

    When content_id is given, the content's url is switched to the
    HLS playlist once the job completes.
    """
    content = await read_upload(file, settings.allowed_video_types_list, settings.max_video_size_mb)
    key, url = await run_in_threadpool(
        storage.upload_file, content, file.filename or "video", "videos/source", file.content_type
    )

    job = await TranscodingService(db, mediaconvert, storage).submit(
        key, uploaded_by_id=admin.id, content_id=content_id
    )
    await db.flush()

    upload = {"url": url, "key": key, "content_type": file.content_type, "size": len(content)}
    return ok({"upload": upload, "job": job}, "Video uploaded, transcoding started")


@router.get("/jobs/{job_id}", response_model=ApiResponse[TranscodingJobResponse])
async def get_transcoding_job(
    job_id: int,
    admin: AdminUser,
    db: DatabaseSession,
    storage: Storage,
    mediaconvert: MediaConvert,
    now: Now,
):
    """Transcoding job status, refreshed from MediaConvert."""
    service = TranscodingService(db, mediaconvert, storage)
    job = await service.get_job(job_id)
    await service.refresh(job, now)
    await db.flush()
    return ok(job)


@router.post("/presigned-url", response_model=ApiResponse[PresignedUploadResponse])
async def create_presigned_upload(
    data: PresignedUploadRequest,
    admin: AdminUser,
    storage: Storage,
    settings: AppSettings,
):
    """Presigned URL for uploading large files straight to S3."""
    allowed = (
        settings.allowed_image_types_list
        + settings.allowed_video_types_list
        + settings.allowed_document_types_list
    )
    if data.content_type not in allowed:
        raise ValidationError(
            f"Unsupported file type {data.content_type}",
            errors={"allowed_types": allowed},
        )

    presigned = storage.get_presigned_upload_url(data.filename, data.folder, data.content_type)
    logger.info("Admin %s requested upload URL for %s", admin.id, presigned["key"])
    return ok(presigned)
