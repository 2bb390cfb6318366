#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Path utility functions for the AI Media Gallery.
"""

from pathlib import Path


def ensure_dir(p: Path) -> None:
    """Ensure directory exists, creating it if necessary."""
    p.mkdir(parents=True, exist_ok=True)


def is_within(child: Path, parent: Path) -> bool:
    """True if ``child`` resolves to a location inside ``parent``."""
    try:
        child.resolve().relative_to(parent.resolve())
        return True
    except ValueError:
        return False
