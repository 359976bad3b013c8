"""
Video transcoding through AWS Elemental MediaConvert.

Uploaded videos are turned into an adaptive HLS ladder. The service does the
work; we submit a job, keep its id, and poll until it finishes.
"""

import logging
import posixpath
from datetime import datetime
from typing import Annotated, Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.config import Settings
from learnhub.core.exceptions import NotFoundError, UnexpectedError
from learnhub.models import Content, TranscodingJob
from learnhub.models.enums import TranscodingStatus
from learnhub.services.storage_service import StorageService

logger = logging.getLogger(__name__)

# (name modifier, width, height, QVBR quality level, audio bitrate)
HLS_RENDITIONS = [
    ("_1080p", 1920, 1080, 9, 96000),
    ("_720p", 1280, 720, 8, 96000),
    ("_480p", 854, 480, 7, 96000),
    ("_360p", 640, 360, 6, 64000),
]

FINISHED_STATUSES = {
    TranscodingStatus.COMPLETE,
    TranscodingStatus.ERROR,
    TranscodingStatus.CANCELED,
}


def _hls_output(modifier: str, width: int, height: int, quality: int, audio_bitrate: int) -> dict:
    return {
        "NameModifier": modifier,
        "ContainerSettings": {"Container": "M3U8"},
        "VideoDescription": {
            "Width": width,
            "Height": height,
            "CodecSettings": {
                "Codec": "H_264",
                "H264Settings": {
                    "RateControlMode": "QVBR",
                    "QvbrSettings": {"QvbrQualityLevel": quality},
                    "MaxBitrate": width * height * 3,
                    "FramerateControl": "SPECIFIED",
                    "FramerateNumerator": 30,
                    "FramerateDenominator": 1,
                },
            },
        },
        "AudioDescriptions": [
            {
                "CodecSettings": {
                    "Codec": "AAC",
                    "AacSettings": {
                        "Bitrate": audio_bitrate,
                        "CodingMode": "CODING_MODE_2_0",
                        "SampleRate": 48000,
                    },
                }
            }
        ],
        "OutputSettings": {"HlsSettings": {"SegmentModifier": modifier}},
    }


def build_hls_job_settings(bucket: str, source_key: str, output_prefix: str) -> dict[str, Any]:
    """MediaConvert job settings for a multi-rendition HLS package."""
    return {
        "Inputs": [
            {
                "FileInput": f"s3://{bucket}/{source_key}",
                "AudioSelectors": {"Audio Selector 1": {"DefaultSelection": "DEFAULT"}},
            }
        ],
        "OutputGroups": [
            {
                "Name": "HLS Output",
                "OutputGroupSettings": {
                    "Type": "HLS_GROUP_SETTINGS",
                    "HlsGroupSettings": {
                        "SegmentLength": 6,
                        "MinSegmentLength": 0,
                        "Destination": f"s3://{bucket}/{output_prefix.rstrip('/')}/",
                    },
                },
                "Outputs": [_hls_output(*rendition) for rendition in HLS_RENDITIONS],
            }
        ],
    }


class MediaConvertClient:
    """Thin wrapper around the boto3 MediaConvert client."""

    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self.client = client if client is not None else self._create_client()

    def _create_client(self):
        if not (self.settings.aws_access_key_id and self.settings.mediaconvert_endpoint_url):
            return None
        return boto3.client(
            "mediaconvert",
            endpoint_url=self.settings.mediaconvert_endpoint_url,
            aws_access_key_id=self.settings.aws_access_key_id,
            aws_secret_access_key=self.settings.aws_secret_access_key,
            region_name=self.settings.aws_region,
            config=Config(retries={"max_attempts": 3, "mode": "standard"}),
        )

    def _require_client(self):
        if self.client is None or not self.settings.mediaconvert_role_arn:
            raise UnexpectedError("Video transcoding is not configured")
        return self.client

    def create_job(self, source_key: str, output_prefix: str, metadata: dict[str, str]) -> str:
        client = self._require_client()
        params: dict[str, Any] = {
            "Role": self.settings.mediaconvert_role_arn,
            "Settings": build_hls_job_settings(
                self.settings.s3_bucket_name, source_key, output_prefix
            ),
            "UserMetadata": metadata,
        }
        if self.settings.mediaconvert_queue_arn:
            params["Queue"] = self.settings.mediaconvert_queue_arn

        try:
            response = client.create_job(**params)
        except (BotoCoreError, ClientError) as e:
            logger.error("MediaConvert job for %s failed to submit: %s", source_key, e)
            raise UnexpectedError("Failed to create transcoding job") from e
        return response["Job"]["Id"]

    def get_job(self, job_id: str) -> dict[str, Any]:
        client = self._require_client()
        try:
            return client.get_job(Id=job_id)["Job"]
        except (BotoCoreError, ClientError) as e:
            logger.error("MediaConvert job %s lookup failed: %s", job_id, e)
            raise UnexpectedError("Failed to get transcoding job status") from e


class TranscodingService:
    def __init__(self, db: AsyncSession, mediaconvert: MediaConvertClient, storage: StorageService):
        self.db = db
        self.mediaconvert = mediaconvert
        self.storage = storage

    async def get_job(self, job_id: int) -> TranscodingJob:
        result = await self.db.execute(select(TranscodingJob).where(TranscodingJob.id == job_id))
        job = result.scalar_one_or_none()
        if not job:
            raise NotFoundError("Transcoding job", job_id)
        return job

    async def submit(
        self,
        source_key: str,
        uploaded_by_id: int | None = None,
        content_id: int | None = None,
    ) -> TranscodingJob:
        """Start HLS transcoding for an uploaded video and track the job."""
        if content_id is not None:
            result = await self.db.execute(select(Content.id).where(Content.id == content_id))
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Content", content_id)

        stem = posixpath.splitext(posixpath.basename(source_key))[0]
        output_prefix = f"hls/{stem}"

        job = TranscodingJob(
            uploaded_by_id=uploaded_by_id,
            content_id=content_id,
            source_key=source_key,
            output_prefix=output_prefix,
            status=TranscodingStatus.SUBMITTED,
        )
        self.db.add(job)
        await self.db.flush()

        job.external_job_id = self.mediaconvert.create_job(
            source_key, output_prefix, {"transcoding_job_id": str(job.id)}
        )
        logger.info("Submitted transcoding job %s (%s) for %s", job.id, job.external_job_id, source_key)
        return job

    async def refresh(self, job: TranscodingJob, now: datetime) -> TranscodingJob:
        """Pull the latest status from MediaConvert."""
        if job.status in FINISHED_STATUSES or not job.external_job_id:
            return job

        remote = self.mediaconvert.get_job(job.external_job_id)
        job.status = TranscodingStatus(remote["Status"].lower())

        if job.status == TranscodingStatus.COMPLETE:
            stem = posixpath.splitext(posixpath.basename(job.source_key))[0]
            job.playback_url = self.storage.public_url(f"{job.output_prefix}/{stem}.m3u8")
            job.completed_at = now
            if job.content_id is not None:
                content = await self.db.get(Content, job.content_id)
                if content is not None:
                    content.url = job.playback_url
        elif job.status == TranscodingStatus.ERROR:
            job.error_message = remote.get("ErrorMessage")
            job.completed_at = now
            logger.warning("Transcoding job %s failed: %s", job.id, job.error_message)

        return job

    async def refresh_pending(self, now: datetime) -> int:
        result = await self.db.execute(
            select(TranscodingJob).where(TranscodingJob.status.not_in(FINISHED_STATUSES))
        )
        jobs = result.scalars().all()
        refreshed = 0
        for job in jobs:
            try:
                await self.refresh(job, now)
            except UnexpectedError:
                # Already logged; the next run retries
                continue
            refreshed += 1
        return refreshed


def get_mediaconvert(request: Request) -> MediaConvertClient:
    return request.app.state.mediaconvert


MediaConvert = Annotated[MediaConvertClient, Depends(get_mediaconvert)]
