"""AI Media Gallery - catalogue AI-generated images and videos with their generation metadata."""

__version__ = "1.0.0"
__author__ = "AI Media Gallery Team"

# Import key classes for convenient top-level access
from .database import DatabaseManager
from .storage import BlobStore
from .ingest import IngestCoordinator, IngestResult, BatchResult
from .maintenance import ReconciliationEngine, StorageReclaimer, compute_integrity_score
from .metadata import extract_metadata, extract_text_chunks
from .models import MediaRecord, ThumbnailPosition, AIInfo, UploadedFile, BlobInfo

__all__ = [
    # Stores
    'DatabaseManager',
    'BlobStore',

    # Core operations
    'IngestCoordinator',
    'IngestResult',
    'BatchResult',
    'ReconciliationEngine',
    'StorageReclaimer',
    'compute_integrity_score',
    'extract_metadata',
    'extract_text_chunks',

    # Data models
    'MediaRecord',
    'ThumbnailPosition',
    'AIInfo',
    'UploadedFile',
    'BlobInfo',

    # Package metadata
    '__version__',
    '__author__'
]
