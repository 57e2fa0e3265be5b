from __future__ import annotations
from typing import Optional
import base64
import io
from PIL import Image, UnidentifiedImageError


def to_base64(image_data: bytes) -> str:
    if isinstance(image_data, bytes):
        return base64.b64encode(image_data).decode('utf-8')
    raise ValueError(f"Unsupported image data type: {type(image_data)}")


def to_data_uri(image_data: bytes, media_type: str) -> str:
    if not media_type:
        raise ValueError("media_type is required for a data URI")
    return f"data:{media_type};base64,{to_base64(image_data)}"


def sniff_media_type(image_bytes: bytes) -> Optional[str]:
    """Return the MIME type Pillow detects for raw image bytes, or None."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return Image.MIME.get(img.format) if img.format else None
    except (UnidentifiedImageError, OSError):
        return None
