"""Image upload, lookup and deletion."""
import io
import logging
import uuid
from pathlib import Path
from typing import Any

import requests
from fastapi import HTTPException, UploadFile, status
from PIL import Image, UnidentifiedImageError

from image_resolver import PLACEHOLDER_IMAGE
from quiz_api import config
from quiz_api.utils import find_image_file, image_path

logger = logging.getLogger(__name__)

_FORMAT_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png", "GIF": ".gif", "WEBP": ".webp"}


def validate_upload(file: UploadFile) -> None:
    """
    Validate uploaded image file.

    Args:
        file: Uploaded file

    Raises:
        HTTPException: If the file is not an accepted image
    """
    if file.content_type is None or not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be an image",
        )
    if file.content_type not in config.IMAGE_ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid content type: {file.content_type}",
        )


def _reencode(content: bytes) -> tuple[bytes, str]:
    """
    Shrink image to fit within the max dimension and re-encode it.

    Args:
        content: Raw uploaded bytes

    Returns:
        Tuple of (encoded bytes, file extension)
    """
    with Image.open(io.BytesIO(content)) as img:
        img.load()
        width, height = img.size
        if width > config.IMAGE_MAX_DIMENSION or height > config.IMAGE_MAX_DIMENSION:
            img.thumbnail(
                (config.IMAGE_MAX_DIMENSION, config.IMAGE_MAX_DIMENSION),
                Image.Resampling.LANCZOS,
            )
            logger.info(f"Resized upload from {width}x{height} to {img.size}")

        # Photos become JPEG; images with transparency stay PNG
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            fmt = "PNG"
            out_img = img.convert("RGBA")
        else:
            fmt = "JPEG"
            out_img = img.convert("RGB")

        buffer = io.BytesIO()
        out_img.save(buffer, format=fmt, optimize=True, quality=config.IMAGE_QUALITY)
        return buffer.getvalue(), _FORMAT_EXTENSIONS[fmt]


def api_url(image_id: str) -> str:
    return f"/api/images?id={image_id}"


async def process_upload(file: UploadFile) -> dict[str, str]:
    """
    Validate, re-encode and store an uploaded image.

    Returns:
        ``{"id", "url", "imageApiUrl"}`` for the stored image

    Raises:
        HTTPException: If validation or processing fails
    """
    validate_upload(file)
    content = await file.read()
    if len(content) > config.IMAGE_MAX_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size must be less than {config.IMAGE_MAX_SIZE_BYTES // (1024 * 1024)}MB",
        )

    try:
        encoded, ext = _reencode(content)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Rejected unreadable upload {file.filename}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File is not a readable image",
        )

    image_id = str(uuid.uuid4())
    target = image_path(image_id, ext)
    config.IMAGES_DIR.mkdir(parents=True, exist_ok=True)
    try:
        target.write_bytes(encoded)
    except OSError as e:
        if target.exists():
            target.unlink()
        logger.error(f"Error saving image: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload file",
        )

    logger.info(f"Stored image {image_id}{ext} ({len(encoded)} bytes)")
    return {"id": image_id, "url": f"/api/images/{image_id}", "imageApiUrl": api_url(image_id)}


def _airtable_image_url(image_id: str, session: requests.Session | None = None) -> str:
    """Find the image url of an Airtable ``Images`` record with matching ID."""
    http = session or requests
    quoted = image_id.replace("\\", "\\\\").replace('"', '\\"')
    response = http.get(
        f"{config.AIRTABLE_API_URL}/{config.AIRTABLE_BASE_ID}/{config.AIRTABLE_TABLE_IMAGES}",
        params={"filterByFormula": f'{{ID}}="{quoted}"'},
        headers={"Authorization": f"Bearer {config.AIRTABLE_API_KEY}"},
        timeout=config.HTTP_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    records = response.json().get("records") or []
    if not records:
        raise LookupError("Image not found")

    fields = records[0].get("fields", {})
    for name in ("Image", "Attachment"):
        attachments = fields.get(name) or []
        if attachments and attachments[0].get("url"):
            return attachments[0]["url"]
    if fields.get("imageData"):
        return fields["imageData"]
    raise LookupError("Image record found but no image data available")


def lookup_image(image_id: str, session: requests.Session | None = None) -> dict[str, Any]:
    """
    Resolve an image id to a loadable URL.

    Local files win; otherwise Airtable is queried when configured. Lookup
    failures still answer with the placeholder so the client can render
    something.
    """
    if find_image_file(image_id) is not None:
        return {"id": image_id, "url": f"/api/images/{image_id}", "message": "Image loaded from local storage"}

    if not (config.AIRTABLE_API_KEY and config.AIRTABLE_BASE_ID):
        logger.warning("Airtable credentials not found, answering with placeholder image")
        return {
            "id": image_id,
            "url": PLACEHOLDER_IMAGE,
            "message": "Using test image (Airtable credentials not configured)",
        }

    try:
        url = _airtable_image_url(image_id, session)
    except (requests.RequestException, LookupError, ValueError) as e:
        logger.error(f"Error loading image {image_id} from Airtable: {e}")
        return {
            "id": image_id,
            "url": PLACEHOLDER_IMAGE,
            "error": str(e),
            "message": "Error occurred, using fallback image",
        }
    return {"id": image_id, "url": url, "message": "Image loaded successfully from Airtable"}


def get_image_file(image_id: str) -> Path:
    path = find_image_file(image_id)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return path


def delete_image(image_id: str) -> bool:
    """
    Delete a stored image file.

    Returns:
        True if deleted, False if not found or removal failed
    """
    path = find_image_file(image_id)
    if path is None:
        return False
    try:
        path.unlink()
        logger.info(f"Deleted image: {path.name}")
        return True
    except OSError as e:
        logger.error(f"Error deleting image {image_id}: {e}")
        return False
