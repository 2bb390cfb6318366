"""Utility functions for the AI Media Gallery."""

from .time import now_iso, local_date_str, unix_millis
from .path import ensure_dir, is_within

__all__ = ['now_iso', 'local_date_str', 'unix_millis', 'ensure_dir', 'is_within']
