"""Exception types raised by the AI Media Gallery core."""


class MediaGalleryError(Exception):
    """Base class for gallery errors."""


class UnsupportedMediaError(MediaGalleryError):
    """Upload is neither an image nor a video."""


class BlobStoreError(MediaGalleryError):
    """A filesystem blob operation failed."""


class InvalidBlobPathError(BlobStoreError, ValueError):
    """Path is not of the form <folder>/<date>/<filename> inside the media root."""


class ThumbnailError(MediaGalleryError):
    """A preview could not be generated from the given payload."""


class IngestError(MediaGalleryError):
    """An upload could not be recorded; no record was created."""
