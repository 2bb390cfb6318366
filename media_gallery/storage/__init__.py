"""Blob storage for uploaded media files."""

from .blob_store import BlobStore
from .paths import normalize_path, web_path, sanitize_filename, media_folder

__all__ = ['BlobStore', 'normalize_path', 'web_path', 'sanitize_filename', 'media_folder']
