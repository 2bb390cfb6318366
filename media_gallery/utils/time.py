#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Time utility functions for the AI Media Gallery.
"""

import time
from datetime import datetime, timezone


def now_iso() -> str:
    """Return current UTC time with millisecond precision, as stored in date_added."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def local_date_str(moment: datetime = None) -> str:
    """Return the local calendar date (YYYY-MM-DD) used for blob folders."""
    moment = moment or datetime.now()
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime("%Y-%m-%d")


def unix_millis(moment: datetime = None) -> int:
    if moment is None:
        return int(time.time() * 1000)
    return int(moment.timestamp() * 1000)
