"""Data models for the AI Media Gallery."""

from .media_record import MediaRecord, ThumbnailPosition, attribute_name
from .ai_info import AIInfo, InterpretResult, Extraction
from .upload import UploadedFile, BlobInfo

__all__ = [
    'MediaRecord', 'ThumbnailPosition', 'attribute_name',
    'AIInfo', 'InterpretResult', 'Extraction',
    'UploadedFile', 'BlobInfo',
]
