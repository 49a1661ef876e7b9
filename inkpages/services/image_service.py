import base64
import io
import logging
import re
import urllib.parse
from typing import Callable, Optional, Tuple

import pycouchdb
from PIL import Image, ImageOps, UnidentifiedImageError

from inkpages.db.couchdb import get_couch
from inkpages.exceptions import (
    ImageProcessingError,
    ImageUploadError,
    ImageValidationError,
)
from inkpages.settings import settings
from inkpages.utils import now_ms

logger = logging.getLogger(__name__)

IMAGE_PATH_PREFIX = "blog-images/"
IMAGE_DOC_TYPE = "image"
VALID_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp")
MIN_QUALITY = 0.1
QUALITY_STEP = 0.1


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def validate_image(content_type: Optional[str], size: int, max_bytes: Optional[int] = None):
    """Reject anything that is not a supported image or is too large to process."""
    max_bytes = max_bytes if max_bytes is not None else settings.IMAGE_MAX_UPLOAD_BYTES
    if (content_type or "").lower() not in VALID_IMAGE_TYPES:
        raise ImageValidationError(
            "Please select a valid image file (JPEG, PNG, GIF, or WebP)"
        )
    if size > max_bytes:
        raise ImageValidationError(
            f"Image size should be less than {format_file_size(max_bytes)}"
        )


def compress_image(
    data: bytes,
    *,
    max_width: int = 1200,
    max_height: int = 800,
    quality: float = 0.8,
    max_size_kb: int = 500,
    measure: Callable[[bytes], int] = len,
) -> bytes:
    """
    Downscale to fit max_width x max_height (keeping the aspect ratio) and
    re-encode as JPEG, lowering the quality one step at a time until the
    output fits max_size_kb or the quality floor is reached.

    ``measure`` sizes each attempt against the budget; pass ``data_uri_size``
    when the result will be stored as a base64 data URI.
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError("Failed to load image for compression") from e

    width, height = image.size
    if width > max_width:
        height = height * max_width / width
        width = max_width
    if height > max_height:
        width = width * max_height / height
        height = max_height

    target = (max(1, round(width)), max(1, round(height)))
    if target != image.size:
        image = image.resize(target, Image.Resampling.LANCZOS)
    image = _flatten(image)

    budget = max_size_kb * 1024
    current = quality
    while True:
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=int(round(current * 100)), optimize=True)
        output = buffer.getvalue()
        if measure(output) <= budget or current <= MIN_QUALITY + 1e-9:
            break
        current = round(current - QUALITY_STEP, 2)

    logger.info(
        f"Compressed image {format_file_size(len(data))} -> "
        f"{format_file_size(len(output))} at {target[0]}x{target[1]}, quality {current}"
    )
    return output


def _flatten(image: Image.Image) -> Image.Image:
    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, "white")
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def to_data_uri(data: bytes, content_type: str = "image/jpeg") -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def data_uri_size(data: bytes) -> int:
    return len(to_data_uri(data))


def sanitize_filename(filename: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", filename or "image")


def get_content_type_from_filename(filename: str) -> str:
    """
    Determine content type from file extension
    """
    filename = filename.lower()
    if filename.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    elif filename.endswith(".png"):
        return "image/png"
    elif filename.endswith(".gif"):
        return "image/gif"
    elif filename.endswith(".webp"):
        return "image/webp"
    else:
        return "application/octet-stream"


def get_image_from_couchdb(image_path: str, *, db) -> Tuple[Optional[bytes], Optional[str]]:
    """
    Retrieve an uploaded image (document plus attachment) from CouchDB
    """
    name = image_path.removeprefix(IMAGE_PATH_PREFIX)
    try:
        try:
            doc = db.get(name)
        except pycouchdb.exceptions.NotFound:
            # If not found, try URL-encoded version
            doc = db.get(urllib.parse.quote(name, safe=""))

        if doc.get("type") != IMAGE_DOC_TYPE:
            logger.warning(f"Document {name} is not an image")
            return None, None

        image_data = db.get_attachment(doc, name)
        if not image_data:
            logger.warning(f"No image data found for: {image_path}")
            return None, None

        # Verify we have the complete image data
        expected_size = doc.get("size")
        if expected_size and len(image_data) != expected_size:
            logger.warning(
                f"Image size mismatch for {image_path}. Expected: {expected_size}, Got: {len(image_data)}"
            )
            return None, None

        content_type = doc.get("contentType") or get_content_type_from_filename(name)
        return image_data, content_type

    except pycouchdb.exceptions.NotFound:
        logger.warning(f"Image not found in CouchDB: {image_path}")
        return None, None
    except Exception as e:
        logger.error(f"Error retrieving image {image_path}: {e}")
        return None, None


class ImageService:
    """Stores compressed images as CouchDB attachments and serves them back."""

    def __init__(self, couch_db=None, *, connect: Callable = get_couch, base_url: Optional[str] = None):
        self._db = couch_db
        self._connect = connect
        self.base_url = (base_url or settings.BLOG_API_URL).rstrip("/")

    @property
    def db(self):
        if self._db is None:
            self._db = self._connect()
        return self._db

    def upload_image(self, filename: str, data: bytes, content_type: str = "image/jpeg") -> str:
        name = f"{now_ms()}_{sanitize_filename(filename)}"
        try:
            doc = self.db.save(
                {
                    "_id": name,
                    "type": IMAGE_DOC_TYPE,
                    "path": f"{IMAGE_PATH_PREFIX}{name}",
                    "contentType": content_type,
                    "size": len(data),
                }
            )
            self.db.put_attachment(doc, data, filename=name, content_type=content_type)
        except Exception as e:
            logger.error(f"Error uploading image {filename}: {e}")
            raise ImageUploadError("Failed to upload image") from e

        url = f"{self.base_url}/images/{IMAGE_PATH_PREFIX}{name}"
        logger.info(f"Uploaded image {name} ({format_file_size(len(data))})")
        return url

    def get_image(self, image_path: str) -> Tuple[Optional[bytes], Optional[str]]:
        try:
            db = self.db
        except Exception as e:
            logger.error(f"CouchDB unavailable while serving {image_path}: {e}")
            return None, None
        return get_image_from_couchdb(image_path, db=db)
