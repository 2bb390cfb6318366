#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Preview thumbnails, data URLs and perceptual hashes for the AI Media Gallery.
"""

import base64
import binascii
import io
import logging
import warnings
from typing import Optional

import imagehash
from PIL import Image, ImageOps, UnidentifiedImageError

from ..config import THUMBNAIL_JPEG_QUALITY, THUMBNAIL_MAX_SIZE
from ..errors import ThumbnailError

logger = logging.getLogger(__name__)
logging.getLogger("PIL.PngImagePlugin").setLevel(logging.WARNING)

# Suppress PIL warnings
warnings.filterwarnings("ignore", category=UserWarning,
                        message=".*Palette images with Transparency expressed in bytes.*")


def to_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> bytes:
    """Decode a ``data:...;base64,`` URL (or bare base64) to bytes.

    Raises:
        ThumbnailError: if the payload is not valid base64.
    """
    payload = data_url.split(",", 1)[1] if data_url.startswith("data:") else data_url
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ThumbnailError(f"Invalid base64 payload: {e}") from e


def make_thumbnail(image_bytes: bytes, max_size: int = THUMBNAIL_MAX_SIZE,
                   quality: int = THUMBNAIL_JPEG_QUALITY) -> str:
    """Return a JPEG data URL no larger than ``max_size`` on either side.

    Aspect ratio is preserved; images already within bounds are only
    re-encoded.

    Raises:
        ThumbnailError: if the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img = ImageOps.exif_transpose(img)
            img.thumbnail((max_size, max_size))
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ThumbnailError(f"Could not create thumbnail: {e}") from e
    return to_data_url(out.getvalue(), "image/jpeg")


def thumbnail_from_data_url(data_url: str) -> str:
    return make_thumbnail(decode_data_url(data_url))


def perceptual_hash(image_bytes: bytes) -> Optional[str]:
    """Hex pHash of an image, or None if it cannot be decoded."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return str(imagehash.phash(img))
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug("Perceptual hash unavailable: %s", e)
        return None


def hash_distance(a: str, b: str) -> int:
    """Hamming distance between two hex pHashes."""
    return imagehash.hex_to_hash(a) - imagehash.hex_to_hash(b)
