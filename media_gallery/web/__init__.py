"""Flask JSON API for the AI Media Gallery."""

from .app import create_app, GalleryServices

__all__ = ['create_app', 'GalleryServices']
