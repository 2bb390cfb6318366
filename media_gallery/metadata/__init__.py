"""Metadata extraction for uploads: PNG text chunks and their interpretation."""

from datetime import date, datetime
from typing import Any, Dict, Optional

from ..errors import UnsupportedMediaError
from ..models.ai_info import Extraction
from ..models.upload import UploadedFile
from .chunks import extract_text_chunks, is_png
from .interpreter import (
    SOURCE_CHATGPT, SOURCE_GENERIC,
    detect_source_hint, interpret, interpret_chatgpt, interpret_generic, interpret_video,
)


def video_metadata(upload: UploadedFile) -> Dict[str, Any]:
    """File-level facts recorded for videos."""
    modified = upload.last_modified
    creation_date = "Unknown"
    if modified:
        try:
            creation_date = datetime.fromisoformat(modified.replace("Z", "+00:00")).date().isoformat()
        except ValueError:
            pass
    return {
        "fileName": upload.filename,
        "fileSize": upload.size,
        "fileType": upload.content_type,
        "fileLastModified": modified,
        "creationDate": creation_date,
    }


def extract_metadata(upload: UploadedFile, source_hint: Optional[str] = None,
                     today: Optional[date] = None) -> Extraction:
    """Run the chunk parser and interpreter appropriate for ``upload``.

    Raises:
        UnsupportedMediaError: if the upload is neither an image nor a video.
    """
    kind = upload.media_kind
    if kind is None:
        raise UnsupportedMediaError(
            f"Unsupported file type for {upload.filename!r}. Only images and videos are supported."
        )

    if kind == "video":
        result = interpret_video(upload.filename, upload.size, today=today)
        return Extraction(result.value, video_metadata(upload), kind, list(result.warnings))

    chunks = extract_text_chunks(upload.data)
    hint = source_hint or detect_source_hint(upload.filename)
    result = interpret(chunks, hint, today=today)
    return Extraction(result.value, dict(chunks), kind, list(result.warnings))


__all__ = [
    'SOURCE_CHATGPT', 'SOURCE_GENERIC',
    'extract_text_chunks', 'is_png',
    'detect_source_hint', 'interpret', 'interpret_chatgpt', 'interpret_generic', 'interpret_video',
    'extract_metadata', 'video_metadata',
]
