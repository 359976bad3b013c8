"""
S3 storage for uploaded media.

Files are served through CloudFront when a distribution domain is
configured, otherwise straight from the bucket (or the S3-compatible
endpoint, e.g. MinIO in development).
"""

import logging
import uuid
from io import BytesIO
from typing import Annotated, BinaryIO

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends, Request, UploadFile

from learnhub.core.config import Settings
from learnhub.core.exceptions import UnexpectedError, ValidationError

logger = logging.getLogger(__name__)


class StorageService:
    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self.bucket = settings.s3_bucket_name
        self.client = client if client is not None else self._create_client()

    def _create_client(self):
        """Initialize S3 client with configuration."""
        if not self.settings.aws_access_key_id:
            return None

        config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 3, "mode": "standard"},
        )

        return boto3.client(
            "s3",
            endpoint_url=self.settings.s3_endpoint_url,
            aws_access_key_id=self.settings.aws_access_key_id,
            aws_secret_access_key=self.settings.aws_secret_access_key,
            region_name=self.settings.aws_region,
            config=config,
        )

    def _require_client(self):
        if self.client is None:
            raise UnexpectedError("Storage service not configured")
        return self.client

    @staticmethod
    def generate_key(folder: str, filename: str) -> str:
        """Unique object key under `folder`, keeping the original extension."""
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        name = uuid.uuid4().hex
        if ext:
            name += f".{ext}"
        return f"{folder.strip('/')}/{name}"

    def public_url(self, key: str) -> str:
        if self.settings.cloudfront_domain:
            return f"https://{self.settings.cloudfront_domain}/{key}"
        if self.settings.s3_endpoint_url:
            return f"{self.settings.s3_endpoint_url}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.settings.aws_region}.amazonaws.com/{key}"

    def upload_file(
        self,
        file: BinaryIO | bytes,
        filename: str,
        folder: str = "uploads",
        content_type: str | None = None,
    ) -> tuple[str, str]:
        """
        Upload a file to S3.

        Args:
            file: File-like object or raw bytes
            filename: Original filename (used for extension)
            folder: S3 folder/prefix
            content_type: MIME type of the file

        Returns:
            (key, public URL) of the stored object
        """
        client = self._require_client()
        key = self.generate_key(folder, filename)

        extra_args = {}
        if content_type:
            extra_args["ContentType"] = content_type

        content = file.read() if hasattr(file, "read") else file

        try:
            client.upload_fileobj(BytesIO(content), self.bucket, key, ExtraArgs=extra_args)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload of %s failed: %s", key, e)
            raise UnexpectedError("File upload failed") from e

        return key, self.public_url(key)

    def get_presigned_upload_url(
        self,
        filename: str,
        folder: str = "uploads",
        content_type: str | None = None,
        expires_in: int = 3600,
    ) -> dict:
        """Presigned PUT URL for a direct client upload."""
        client = self._require_client()
        key = self.generate_key(folder, filename)

        params = {"Bucket": self.bucket, "Key": key}
        if content_type:
            params["ContentType"] = content_type

        try:
            url = client.generate_presigned_url("put_object", Params=params, ExpiresIn=expires_in)
        except (BotoCoreError, ClientError) as e:
            logger.error("Presigning upload for %s failed: %s", key, e)
            raise UnexpectedError("Could not create upload URL") from e

        return {
            "upload_url": url,
            "key": key,
            "public_url": self.public_url(key),
            "expires_in": expires_in,
        }


async def read_upload(file: UploadFile, allowed_types: list[str], max_size_mb: int) -> bytes:
    """Read an uploaded file after checking its MIME type and size."""
    if file.content_type not in allowed_types:
        raise ValidationError(
            f"Unsupported file type {file.content_type}",
            errors={"allowed_types": allowed_types},
        )

    content = await file.read()
    if not content:
        raise ValidationError("File is empty", field="file")
    if len(content) > max_size_mb * 1024 * 1024:
        raise ValidationError(f"File exceeds the {max_size_mb} MB limit", field="file")
    return content


def get_storage_service(request: Request) -> StorageService:
    """Shared service built at application startup."""
    return request.app.state.storage


Storage = Annotated[StorageService, Depends(get_storage_service)]
