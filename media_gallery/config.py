#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Global configuration and constants for the AI Media Gallery.
"""

import os
from typing import Dict, Set

# File type categories
IMAGE_EXT: Set[str] = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
VIDEO_EXT: Set[str] = {".mp4", ".mov", ".avi", ".mkv"}
SUPPORTED_EXT: Set[str] = IMAGE_EXT | VIDEO_EXT

MEDIA_TYPES: Set[str] = {"image", "video"}

# Directory names for blob storage, keyed by media type
IMAGES_DIRNAME = "images"
VIDEOS_DIRNAME = "videos"
MEDIA_FOLDERS: Dict[str, str] = {"image": IMAGES_DIRNAME, "video": VIDEOS_DIRNAME}

# Default locations (can be overridden by CLI or environment)
DEFAULT_DB_PATH = os.environ.get("MEDIA_GALLERY_DB", "ai-gallery.db")
DEFAULT_MEDIA_ROOT = os.environ.get("MEDIA_GALLERY_ROOT", ".")

# Upload limits
MAX_UPLOAD_BYTES = 100 * 1024 * 1024  # 100MB

# Thumbnail defaults
THUMBNAIL_MAX_SIZE = 200
THUMBNAIL_JPEG_QUALITY = 30
DEFAULT_THUMBNAIL_X = 50
DEFAULT_THUMBNAIL_Y = 25  # top-weighted crop

# Interpreter thresholds
MIN_PROMPT_LENGTH = 10
MIN_RAW_PROMPT_LENGTH = 5
CHATGPT_FILENAME_PREFIX = "ChatGPT"

# Metadata store field limits
FIELD_LIMITS: Dict[str, int] = {
    "title": 1000,
    "prompt": 10000,
    "model": 500,
    "tags": 2000,
    "notes": 10000,
}
METADATA_STRING_LIMIT = 50000
METADATA_OBJECT_LIMIT = 10000
METADATA_TOTAL_LIMIT = 200000
THUMBNAIL_DATA_MIN_CHARS = 100
THUMBNAIL_DATA_MAX_CHARS = 2000000

# Reclaim settings
RECLAIM_MIN_INLINE_CHARS = 1000
RECLAIM_YIELD_EVERY = 5
RECLAIM_YIELD_SECONDS = 0.1

# Duplicate hinting
DEFAULT_PHASH_THRESHOLD = 0

# Export format
EXPORT_VERSION = "3.0-server"
