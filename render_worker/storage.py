"""
Upload of finished videos to the R2 / S3-compatible bucket.

One ``VideoUploader`` is built at start-up and shared by every job. It is
never mutated after construction, and the underlying MinIO client is
thread-safe, so concurrent jobs can upload through it without locking.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from pathlib import Path
from urllib.parse import urlsplit

import urllib3
from minio import Minio
from minio.error import MinioException

from .config import Settings
from .errors import UploadError

logger = logging.getLogger(__name__)

CACHE_ONE_YEAR = "max-age=31536000"


def _client_from_settings(settings: Settings) -> Minio:
    # Minio wants "host[:port]"; R2 hands out a full https:// URL
    parts = urlsplit(settings.r2_endpoint)
    endpoint = parts.netloc or parts.path
    return Minio(
        endpoint,
        access_key=settings.r2_access_key_id,
        secret_key=settings.r2_secret_access_key,
        secure=parts.scheme != "http",
        region=settings.r2_region,
    )


class VideoUploader:
    def __init__(self, client: Minio, bucket: str, cdn_url: str) -> None:
        self._client = client
        self._bucket = bucket
        self._cdn_url = cdn_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "VideoUploader":
        return cls(_client_from_settings(settings), settings.r2_bucket, settings.r2_cdn_url)

    @staticmethod
    def object_key(job_id: str) -> str:
        return f"videos/{job_id}/{int(time.time() * 1000)}.mp4"

    def public_url(self, key: str) -> str:
        return f"{self._cdn_url}/{key}"

    async def upload(self, video_path: Path, job_id: str) -> str:
        """Push *video_path* to the bucket and return its public CDN URL."""
        key = self.object_key(job_id)
        body = await asyncio.to_thread(video_path.read_bytes)
        logger.info("[upload] uploading %s (%d bytes) to %s", key, len(body), self._bucket)

        try:
            await asyncio.to_thread(
                self._client.put_object,
                bucket_name=self._bucket,
                object_name=key,
                data=io.BytesIO(body),
                length=len(body),
                content_type="video/mp4",
                metadata={
                    "Cache-Control": CACHE_ONE_YEAR,
                    "Content-Disposition": "inline",
                    "x-amz-acl": "public-read",
                },
            )
        except (MinioException, urllib3.exceptions.HTTPError) as exc:
            raise UploadError(f"upload of {key} failed: {exc}") from exc

        url = self.public_url(key)
        logger.info("[upload] video uploaded successfully: %s", url)
        return url
