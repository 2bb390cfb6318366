"""Upload ingestion for the AI Media Gallery."""

from .coordinator import IngestCoordinator, IngestResult, BatchResult
from .thumbnails import make_thumbnail, thumbnail_from_data_url, to_data_url, decode_data_url, perceptual_hash

__all__ = [
    'IngestCoordinator', 'IngestResult', 'BatchResult',
    'make_thumbnail', 'thumbnail_from_data_url', 'to_data_url', 'decode_data_url', 'perceptual_hash',
]
