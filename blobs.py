from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from errors import RemoteError

logger = logging.getLogger(__name__)


class BlobStore:
    """Object storage behind an S3-compatible endpoint."""

    def __init__(
        self,
        bucket: str,
        public_base: str,
        endpoint: str = "",
        access_key_id: str = "",
        secret_access_key: str = "",
        client=None,
    ) -> None:
        self.bucket = bucket
        self.public_base = public_base.rstrip("/")
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint or None,
            region_name="auto",
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
        )

    def url_for(self, key: str) -> str:
        return f"{self.public_base}/{key.lstrip('/')}"

    def key_for(self, url: str) -> Optional[str]:
        if self.public_base and url.startswith(self.public_base + "/"):
            return unquote(url[len(self.public_base) + 1 :])
        path = urlparse(url).path.lstrip("/")
        if path.startswith(self.bucket + "/"):
            path = path[len(self.bucket) + 1 :]
        return unquote(path) or None

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Blob upload failed for %s", key)
            raise RemoteError("Image upload failed.") from exc
        return self.url_for(key)

    def delete(self, url: str) -> None:
        key = self.key_for(url)
        if not key:
            raise RemoteError(f"Cannot resolve a storage key from {url}.")
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise RemoteError(f"Could not delete {key}.") from exc
