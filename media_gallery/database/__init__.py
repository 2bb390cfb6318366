"""SQLite metadata store for the AI Media Gallery."""

from .manager import DatabaseManager, estimate_data_size, cap_metadata, validate_thumbnail_data
from .init import init_db_if_needed

__all__ = ['DatabaseManager', 'init_db_if_needed', 'estimate_data_size', 'cap_metadata',
           'validate_thumbnail_data']
