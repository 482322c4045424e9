"""Upload validation and object storage for template images and attachments."""

import logging
import os
import re
import shutil
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Optional

from fastapi import UploadFile

from surveyhub.config import get_settings
from surveyhub.errors import ValidationError

settings = get_settings()
logger = logging.getLogger(__name__)

IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})
ATTACHMENT_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "application/pdf",
    "video/mp4",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})


@dataclass
class UploadedFile:
    """A file received from the client, not yet stored."""
    filename: str
    content_type: str
    size: int
    file: BinaryIO

    @classmethod
    def from_upload(cls, upload: UploadFile) -> "UploadedFile":
        size = upload.size
        if size is None:
            upload.file.seek(0, os.SEEK_END)
            size = upload.file.tell()
            upload.file.seek(0)
        return cls(
            filename=upload.filename or "upload",
            content_type=upload.content_type or "application/octet-stream",
            size=size,
            file=upload.file,
        )


def validate_image(image: UploadedFile) -> None:
    if image.content_type not in IMAGE_TYPES:
        raise ValidationError("Invalid image type. Use JPEG, PNG, or GIF.")
    if image.size > settings.max_image_size:
        raise ValidationError("Image size must be less than 5MB.")


def validate_attachment(attachment: UploadedFile, index: int) -> None:
    if attachment.content_type not in ATTACHMENT_TYPES:
        raise ValidationError(
            "Invalid attachment type. Use JPEG, PNG, PDF, MP4, DOC, or DOCX.",
            errors=[{"loc": ["question_attachments", str(index)], "msg": "invalid type"}],
        )
    if attachment.size > settings.max_attachment_size:
        raise ValidationError(
            "Attachment size must be less than 10MB.",
            errors=[{"loc": ["question_attachments", str(index)], "msg": "too large"}],
        )


class FileStorage:
    """Object store interface: ``upload(file) -> url``."""

    def upload(self, file: UploadedFile) -> str:
        raise NotImplementedError


class LocalFileStorage(FileStorage):
    """Stores uploads under ``upload_dir`` and serves them from ``base_url``."""

    def __init__(self, upload_dir: Optional[str] = None, base_url: Optional[str] = None):
        self.upload_dir = upload_dir or settings.upload_dir
        self.base_url = (base_url or settings.public_upload_base_url).rstrip("/")

    def upload(self, file: UploadedFile) -> str:
        # Generate unique filename
        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        safe_filename = re.sub(r'[^a-zA-Z0-9._-]', '_', file.filename)
        stored_filename = f"{timestamp}_{uuid.uuid4().hex[:8]}_{safe_filename}"
        file_path = os.path.join(self.upload_dir, stored_filename)

        os.makedirs(self.upload_dir, exist_ok=True)
        with open(file_path, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)

        logger.info("Stored upload: name=%s size=%s", stored_filename, file.size)
        return f"{self.base_url}/{stored_filename}"


def get_storage() -> FileStorage:
    """Dependency returning the configured object store."""
    return LocalFileStorage()
