#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Canonical blob path handling for the AI Media Gallery.

Blob paths are stored, listed and compared in exactly one form: forward
slashes, no leading slash, e.g. ``images/2025-07-23/1753262400000_cat.png``.
Every value crossing the BlobStore boundary (record ``server_path`` values,
URL paths, OS-native paths) goes through ``normalize_path`` first.
"""

import re
from typing import Optional

from ..config import MEDIA_FOLDERS

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")
_REPEATED_SLASHES = re.compile(r"/{2,}")


def normalize_path(path: Optional[str]) -> Optional[str]:
    """Convert any stored or web-style path into the canonical form."""
    if path is None:
        return None
    text = str(path).strip().replace("\\", "/")
    text = _REPEATED_SLASHES.sub("/", text)
    while text.startswith("./"):
        text = text[2:]
    return text.lstrip("/")


def web_path(path: str) -> str:
    """URL form of a blob path (leading slash)."""
    return "/" + normalize_path(path)


def sanitize_filename(name: str) -> str:
    """Replace every character outside [A-Za-z0-9.-] with '_'."""
    return _UNSAFE_CHARS.sub("_", name)


def media_folder(media_kind: str) -> str:
    try:
        return MEDIA_FOLDERS[media_kind]
    except KeyError:
        raise ValueError(f"Unknown media kind: {media_kind!r}") from None
