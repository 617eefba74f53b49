"""Validation, upload and removal of product images."""
from dataclasses import dataclass
from typing import Optional
import math
import secrets
import string
import time

from retrade.core.logging_config import get_logger
from retrade.core_settings import get_settings
from retrade.infrastructure.blob_store import BlobStore

logger = get_logger(__name__)
settings = get_settings()

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")
_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

TOO_LARGE = "File size must be less than 3MB"
BAD_TYPE = "Only JPEG, PNG, and WebP images are allowed"

@dataclass
class ImageFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

@dataclass
class UploadResult:
    url: str
    success: bool
    error: Optional[str] = None

def image_from_upload(upload) -> ImageFile:
    """Read a Starlette ``UploadFile`` into memory."""
    upload.file.seek(0)
    return ImageFile(
        filename=upload.filename or "",
        content_type=upload.content_type or "",
        data=upload.file.read(),
    )

def non_empty_images(uploads) -> list[ImageFile]:
    """Images the user actually picked; browsers post empty parts for unused inputs."""
    images = []
    for upload in uploads or []:
        if upload is None or isinstance(upload, str):
            continue
        image = image_from_upload(upload)
        if image.size > 0:
            images.append(image)
    return images

def validate_image(image: ImageFile) -> tuple[bool, Optional[str]]:
    if image.size > settings.MAX_IMAGE_BYTES:
        return False, TOO_LARGE
    if image.content_type not in ALLOWED_IMAGE_TYPES:
        return False, BAD_TYPE
    return True, None

def _blob_filename(image: ImageFile) -> str:
    if "." in image.filename:
        extension = image.filename.rsplit(".", 1)[1]
    else:
        extension = _EXTENSIONS.get(image.content_type, "bin")
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(11))
    return f"product-{int(time.time() * 1000)}-{suffix}.{extension}"

def upload_image(store: BlobStore, image: ImageFile) -> UploadResult:
    valid, error = validate_image(image)
    if not valid:
        return UploadResult(url="", success=False, error=error)
    try:
        url = store.put(_blob_filename(image), image.data, image.content_type)
    except Exception:
        logger.error("Image upload error", exc_info=True)
        return UploadResult(url="", success=False, error="Failed to upload image. Please try again.")
    return UploadResult(url=url, success=True)

def upload_images(store: BlobStore, images: list[ImageFile]) -> list[UploadResult]:
    results = []
    for image in images:
        result = upload_image(store, image)
        results.append(result)
        if not result.success:
            break
    return results

def delete_image(store: BlobStore, url: str) -> bool:
    try:
        store.delete(url)
    except Exception:
        logger.error(f"Image deletion error for {url}", exc_info=True)
        return False
    return True

def delete_images(store: BlobStore, urls: list[str]) -> bool:
    return all([delete_image(store, url) for url in urls])

def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = min(int(math.floor(math.log(size, 1024))), len(units) - 1)
    value = round(size / math.pow(1024, i), 2)
    return f"{value:g} {units[i]}"
