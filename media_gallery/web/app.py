#!/usr/bin/env python3
"""
HTTP transport for the AI Media Gallery.

A thin JSON API over the core: every route hands its request to the same
stores, coordinator and maintenance engines the CLI uses. Errors are always
returned as ``{"error": message}``.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify, request, send_from_directory
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from ..config import DEFAULT_DB_PATH, DEFAULT_MEDIA_ROOT, IMAGES_DIRNAME, MAX_UPLOAD_BYTES, VIDEOS_DIRNAME
from ..database.init import init_db_if_needed
from ..database.manager import DatabaseManager, check_user_fields
from ..errors import IngestError, UnsupportedMediaError
from ..ingest.coordinator import IngestCoordinator
from ..maintenance.reclaim import StorageReclaimer
from ..maintenance.reconcile import ReconciliationEngine
from ..models.media_record import attribute_name
from ..models.upload import UploadedFile
from ..storage.blob_store import BlobStore
from ..utils.time import now_iso

logger = logging.getLogger(__name__)


class GalleryServices:
    """The store handles shared by all requests of one app."""

    def __init__(self, db_path: Path, media_root: Path):
        init_db_if_needed(db_path)
        self.db = DatabaseManager(db_path)
        self.blobs = BlobStore(media_root)
        self.blobs.ensure_layout()
        self.coordinator = IngestCoordinator(self.blobs, self.db)
        self.reconciler = ReconciliationEngine(self.blobs, self.db)
        self.reclaimer = StorageReclaimer(self.db)


def _services() -> GalleryServices:
    return current_app.extensions["media_gallery"]


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """Build the Flask app.

    Recognized config keys: ``DB_PATH``, ``MEDIA_ROOT``, plus any Flask
    setting (``TESTING``, ``MAX_CONTENT_LENGTH``...).
    """
    app = Flask(__name__)
    app.config.update(
        DB_PATH=DEFAULT_DB_PATH,
        MEDIA_ROOT=DEFAULT_MEDIA_ROOT,
        MAX_CONTENT_LENGTH=MAX_UPLOAD_BYTES,
    )
    if config:
        app.config.update(config)

    services = GalleryServices(Path(app.config["DB_PATH"]), Path(app.config["MEDIA_ROOT"]))
    app.extensions["media_gallery"] = services
    media_root = Path(app.config["MEDIA_ROOT"]).resolve()

    # ------------------------------------------------------------------
    # Upload & records
    # ------------------------------------------------------------------

    @app.route('/upload', methods=['POST'])
    def upload():
        """Ingest one multipart file (field ``file``; ``image`` also accepted)."""
        storage = request.files.get('file') or request.files.get('image')
        if storage is None or not storage.filename:
            return jsonify({'error': 'No file uploaded'}), 400

        item = UploadedFile(
            filename=storage.filename,
            data=storage.read(),
            content_type=storage.mimetype or None,
            last_modified=request.form.get('lastModified'),
        )
        try:
            result = asyncio.run(_services().coordinator.ingest_upload(item, request.form.get('source')))
        except UnsupportedMediaError as e:
            return jsonify({'error': str(e)}), 400
        except IngestError as e:
            return jsonify({'error': str(e)}), 500

        payload = result.to_dict()
        payload.update({
            'originalName': storage.filename,
            'size': item.size,
            'mediaType': result.record.media_type,
            'uploadDate': now_iso(),
        })
        return jsonify(payload)

    @app.route('/api/media')
    def list_media():
        media = [r.to_dict() for r in _services().db.list_all()]
        return jsonify({'success': True, 'media': media})

    @app.route('/api/media/<int:media_id>')
    def get_media(media_id):
        record = _services().db.get_by_id(media_id)
        if record is None:
            return jsonify({'error': 'Media not found'}), 404
        return jsonify({'success': True, 'media': record.to_dict()})

    @app.route('/api/media/<int:media_id>', methods=['PUT'])
    def update_media(media_id):
        body = _json_body()
        fields = {attribute_name(k): v for k, v in body.items() if k != 'id'}
        try:
            check_user_fields(fields)
            changes = _services().db.update(media_id, fields)
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        if not changes and _services().db.get_by_id(media_id) is None:
            return jsonify({'error': 'Media not found'}), 404
        return jsonify({'success': True, 'changes': changes})

    @app.route('/api/media/<int:media_id>', methods=['DELETE'])
    def delete_media(media_id):
        removed = asyncio.run(_services().coordinator.remove(media_id))
        return jsonify({'success': True, 'changes': 1 if removed else 0})

    @app.route('/api/media/search/<path:term>')
    def search_media(term):
        media = [r.to_dict() for r in _services().db.search(term)]
        return jsonify({'success': True, 'media': media})

    @app.route('/api/stats')
    def stats():
        db = _services().db
        return jsonify({'success': True, 'stats': db.stats(), 'storage': db.storage_stats()})

    @app.route('/api/images')
    def list_files():
        """Files on disk grouped by date folder."""
        by_date = _services().blobs.list_by_date()
        media_by_date = {day: [b.to_dict() for b in files] for day, files in by_date.items()}
        all_files = [b for files in by_date.values() for b in files]
        images = sum(1 for b in all_files if b.media_type == 'image')
        return jsonify({
            'success': True,
            'dates': list(media_by_date),
            'mediaByDate': media_by_date,
            'totalImages': images,
            'totalVideos': len(all_files) - images,
            'totalFiles': len(all_files),
        })

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    @app.route('/api/export')
    def export():
        response = jsonify(_services().db.export_all())
        response.headers['Content-Disposition'] = 'attachment; filename="ai-gallery-backup.json"'
        return response

    @app.route('/api/migrate', methods=['POST'])
    def migrate():
        try:
            result = _services().db.import_data(request.get_json(silent=True))
        except ValueError as e:
            return jsonify({'error': 'Migration failed: ' + str(e)}), 400
        return jsonify({
            'success': True,
            'imported': result['imported'],
            'errors': result['errors'],
            'message': f"Successfully imported {result['imported']} items with {result['errors']} errors",
        })

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    @app.route('/api/integrity')
    def integrity():
        report = asyncio.run(_services().reconciler.integrity_report())
        return jsonify({'success': True, 'report': report.to_dict()})

    @app.route('/api/orphans/cleanup', methods=['POST'])
    def cleanup_orphans():
        """Delete the given orphan files, or every current orphan if none are given.

        Results echo each file descriptor as it was sent.
        """
        reconciler = _services().reconciler
        files = _json_body().get('files')
        if files is None:
            scan = asyncio.run(reconciler.scan_orphans())
            files = scan.orphan_files
        elif not isinstance(files, list):
            return jsonify({'error': "'files' must be a list of paths"}), 400
        result = asyncio.run(reconciler.cleanup_orphans(files))
        return jsonify({'success': True, 'results': result.to_dict()})

    @app.route('/api/repair', methods=['POST'])
    def repair():
        options = _json_body()
        result = asyncio.run(_services().reconciler.repair(
            cleanup_orphans=bool(options.get('cleanupOrphans', False)),
            remove_missing_records=bool(options.get('removeMissingRecords', False)),
            dry_run=bool(options.get('dryRun', True)),
        ))
        return jsonify({'success': True, **result.to_dict()})

    @app.route('/api/reclaim', methods=['POST'])
    def reclaim():
        result = asyncio.run(_services().reclaimer.reclaim())
        return jsonify({'success': True, **result.to_dict()})

    # ------------------------------------------------------------------
    # Stored files
    # ------------------------------------------------------------------

    @app.route(f'/{IMAGES_DIRNAME}/<path:filename>')
    def serve_image(filename):
        return send_from_directory(media_root / IMAGES_DIRNAME, filename)

    @app.route(f'/{VIDEOS_DIRNAME}/<path:filename>')
    def serve_video(filename):
        return send_from_directory(media_root / VIDEOS_DIRNAME, filename)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        try:
            total = _services().db.stats()['total']
        except Exception as e:
            return jsonify({'status': 'unhealthy', 'error': str(e)}), 503
        return jsonify({
            'status': 'healthy',
            'database_accessible': True,
            'items': total,
            'media_root': str(media_root),
        })

    # Error handlers
    @app.errorhandler(RequestEntityTooLarge)
    def too_large(error):
        return jsonify({'error': f'File too large (max {MAX_UPLOAD_BYTES // (1024 * 1024)}MB)'}), 400

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        logger.exception("Unhandled error on %s", request.path)
        return jsonify({'error': str(e)}), 500

    return app
