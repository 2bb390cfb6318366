#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Shared pytest fixtures for the AI Media Gallery tests.
"""

import pytest

from media_gallery.database.init import init_db_if_needed
from media_gallery.database.manager import DatabaseManager
from media_gallery.storage.blob_store import BlobStore

from .fixtures.builders import InMemoryBlobStore, InMemoryMetadataStore


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "gallery.db"
    init_db_if_needed(path)
    return path


@pytest.fixture
def db_manager(db_path):
    """A fresh SQLite store for each test."""
    manager = DatabaseManager(db_path)
    yield manager
    manager.close()


@pytest.fixture
def media_root(tmp_path):
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture
def blob_store(media_root):
    store = BlobStore(media_root)
    store.ensure_layout()
    return store


@pytest.fixture
def fake_blobs():
    return InMemoryBlobStore()


@pytest.fixture
def fake_records():
    return InMemoryMetadataStore()
