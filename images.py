from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional

import requests
from slugify import slugify

from blobs import BlobStore
from errors import AuthRequiredError, ValidationError
from models import SessionUser

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "blog-images"
ALLOWED_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "svg"}
ALLOWED_MIMETYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/svg+xml"}


@dataclass
class ImageFile:
    filename: str
    content_type: str
    data: bytes

    @classmethod
    def from_storage(cls, storage) -> Optional["ImageFile"]:
        """Build from a werkzeug ``FileStorage``; empty inputs yield None."""
        if storage is None or not storage.filename:
            return None
        return cls(
            filename=storage.filename,
            content_type=(storage.mimetype or "").lower(),
            data=storage.read(),
        )

    @property
    def extension(self) -> str:
        return PurePosixPath(self.filename).suffix.lower().lstrip(".")


def is_allowed(image: ImageFile) -> bool:
    return image.content_type in ALLOWED_MIMETYPES or image.extension in ALLOWED_EXTENSIONS


def blob_key(filename: str, uploaded_ms: int) -> str:
    path = PurePosixPath(filename)
    stem = slugify(path.stem) or "image"
    suffix = path.suffix.lower()
    return f"{IMAGE_PREFIX}/{uploaded_ms}_{stem}{suffix}"


class ImagePipeline:
    def __init__(
        self,
        blobs: BlobStore,
        optimizer_url: str = "",
        optimizer_timeout: float = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.blobs = blobs
        self.optimizer_url = optimizer_url
        self.optimizer_timeout = optimizer_timeout
        self.http = session or requests.Session()

    def validate(self, image: ImageFile) -> ImageFile:
        if not is_allowed(image):
            raise ValidationError(
                "Invalid file type. Please select a JPEG, PNG, GIF or SVG image."
            )
        return image

    def optimize(self, image: ImageFile) -> ImageFile:
        """Return the optimizer's JPEG, or the original on any failure."""
        if not self.optimizer_url:
            return image
        try:
            resp = self.http.post(
                self.optimizer_url,
                files={"file": (image.filename, image.data, image.content_type)},
                timeout=self.optimizer_timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Image optimization failed, uploading original: %s", exc)
            return image
        if not resp.content:
            logger.warning("Image optimizer returned an empty body, uploading original")
            return image
        return ImageFile(filename=image.filename, content_type="image/jpeg", data=resp.content)

    def upload(self, user: Optional[SessionUser], image: ImageFile) -> str:
        if user is None:
            raise AuthRequiredError("You must be signed in to upload images.")
        self.validate(image)
        prepared = self.optimize(image)
        key = blob_key(image.filename, int(time.time() * 1000))
        url = self.blobs.upload(key, prepared.data, prepared.content_type or "application/octet-stream")
        logger.info("Uploaded image %s for %s", key, user.uid)
        return url
