#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Database schema definitions for the AI Media Gallery.
"""

MAIN_SCHEMA = """
CREATE TABLE IF NOT EXISTS media (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    prompt TEXT,
    model TEXT,
    tags TEXT,
    notes TEXT,
    date_added TEXT NOT NULL,
    media_type TEXT DEFAULT 'image' CHECK (media_type IN ('image', 'video')),
    image_data TEXT,
    thumbnail_data TEXT,
    thumbnail_position_x INTEGER DEFAULT 50,
    thumbnail_position_y INTEGER DEFAULT 25,
    metadata_json TEXT,
    server_path TEXT,
    file_size INTEGER DEFAULT 0,
    phash TEXT,
    created_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_media_date_added ON media(date_added DESC);
CREATE INDEX IF NOT EXISTS idx_media_type ON media(media_type);
CREATE INDEX IF NOT EXISTS idx_media_title ON media(title);
CREATE INDEX IF NOT EXISTS idx_media_created_at ON media(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_media_server_path ON media(server_path);
CREATE INDEX IF NOT EXISTS idx_media_phash ON media(phash);

CREATE TRIGGER IF NOT EXISTS media_update_timestamp
AFTER UPDATE ON media
BEGIN
    UPDATE media SET updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now') WHERE id = NEW.id;
END;
"""
