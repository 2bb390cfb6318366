#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Main CLI entry point for the AI Media Gallery.
"""

import argparse
import sys
import logging
from pathlib import Path

from .config import DEFAULT_DB_PATH, DEFAULT_MEDIA_ROOT
from .database.manager import DatabaseManager
from .database.init import init_db_if_needed
from .metadata.interpreter import SOURCE_CHATGPT, SOURCE_GENERIC
from .storage.blob_store import BlobStore
from .commands.media import cmd_ingest, cmd_list, cmd_search, cmd_show, cmd_update, cmd_delete
from .commands.maintenance import cmd_integrity, cmd_cleanup_orphans, cmd_repair, cmd_reclaim
from .commands.backup import cmd_export, cmd_import
from .commands.stats import cmd_show_stats
from .jsonio import enable_json_logging


def setup_logging(verbose: bool):
    """Configure logging for the CLI tool."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    logging.debug("Verbose logging enabled (DEBUG level).")


def create_parser():
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="media-gallery",
        description="AI Media Gallery - catalogue AI-generated images and videos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  # Add files (PNG generation metadata is read automatically)
  %(prog)s ingest ~/Downloads/ComfyUI_00042_.png ./renders/

  # Find and inspect
  %(prog)s search "cyberpunk" --json
  %(prog)s show 12

  # Keep the two stores consistent
  %(prog)s integrity
  %(prog)s repair --cleanup-orphans --remove-missing --apply
  %(prog)s reclaim

  # Serve the JSON API
  %(prog)s serve --port 3000
        """
    )

    # Global options
    parser.add_argument("--db", default=DEFAULT_DB_PATH,
                        help=f"SQLite database path (default: {DEFAULT_DB_PATH}, env MEDIA_GALLERY_DB)")
    parser.add_argument("--root", default=DEFAULT_MEDIA_ROOT,
                        help="Media root holding images/ and videos/ (default: %(default)s, env MEDIA_GALLERY_ROOT)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose (DEBUG) output")
    parser.add_argument("--json", action="store_true",
                        help="Output results as JSON instead of human-readable text")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    _add_media_parsers(subparsers)
    _add_maintenance_parsers(subparsers)
    _add_backup_parsers(subparsers)
    _add_stats_parser(subparsers)
    _add_serve_parser(subparsers)

    return parser


def _add_media_parsers(subparsers):
    """Add record command parsers."""
    ingest_parser = subparsers.add_parser("ingest", help="Add media files or directories")
    ingest_parser.add_argument("paths", nargs="+", type=Path, help="Files or directories to add")
    ingest_parser.add_argument("--source", choices=[SOURCE_CHATGPT, SOURCE_GENERIC],
                               help="Force the metadata convention instead of detecting it from the filename")

    list_parser = subparsers.add_parser("list", help="List media, newest first")
    list_parser.add_argument("--limit", type=int, help="Maximum items to show")

    search_parser = subparsers.add_parser("search", help="Search title, prompt, tags, model and notes")
    search_parser.add_argument("term", help="Case-insensitive search term")

    show_parser = subparsers.add_parser("show", help="Show one media item")
    show_parser.add_argument("id", type=int, help="Media ID")
    show_parser.add_argument("--include-data", action="store_true",
                             help="Include inline image and thumbnail data (JSON mode)")

    update_parser = subparsers.add_parser("update", help="Edit a media item")
    update_parser.add_argument("id", type=int, help="Media ID")
    for field in ("title", "prompt", "model", "tags", "notes"):
        update_parser.add_argument(f"--{field}", help=f"New {field}")
    update_parser.add_argument("--thumb-x", type=int, help="Thumbnail focal point x (0-100)")
    update_parser.add_argument("--thumb-y", type=int, help="Thumbnail focal point y (0-100)")

    delete_parser = subparsers.add_parser("delete", help="Delete a media item and its file")
    delete_parser.add_argument("id", type=int, help="Media ID")


def _add_maintenance_parsers(subparsers):
    """Add consistency maintenance parsers."""
    subparsers.add_parser("integrity", help="Report orphan files and records with missing files")

    cleanup_parser = subparsers.add_parser("cleanup-orphans", help="Delete files no record references")
    cleanup_parser.add_argument("--dry-run", action="store_true", help="Only list what would be deleted")

    repair_parser = subparsers.add_parser("repair", help="Fix integrity issues (dry run unless --apply)")
    repair_parser.add_argument("--cleanup-orphans", action="store_true", help="Delete orphan files")
    repair_parser.add_argument("--remove-missing", action="store_true",
                               help="Remove records whose file is missing")
    repair_parser.add_argument("--apply", action="store_true", help="Actually apply the fixes")

    subparsers.add_parser("reclaim", help="Drop inline data for items stored on disk")


def _add_backup_parsers(subparsers):
    """Add export/import parsers."""
    export_parser = subparsers.add_parser("export", help="Export all records to JSON")
    export_parser.add_argument("--out", type=Path, help="Output file (default: ai-gallery-backup-<date>.json)")

    import_parser = subparsers.add_parser("import", help="Import records from an export file")
    import_parser.add_argument("file", type=Path, help="Export JSON file")


def _add_stats_parser(subparsers):
    """Add stats command parser."""
    stats_parser = subparsers.add_parser("stats", help="Show gallery statistics")
    stats_parser.add_argument("--detailed", action="store_true",
                              help="Show per-date file breakdown")


def _add_serve_parser(subparsers):
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP JSON API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=3000, help="Port (default: 3000)")
    serve_parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")


def _update_fields(args):
    fields = {}
    for field in ("title", "prompt", "model", "tags", "notes"):
        value = getattr(args, field)
        if value is not None:
            fields[field] = value
    if args.thumb_x is not None or args.thumb_y is not None:
        fields["thumbnail_position"] = {"x": args.thumb_x, "y": args.thumb_y}
    return fields


def main(argv=None):
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging based on --verbose (but suppress if JSON output requested)
    if args.json:
        enable_json_logging()
    else:
        setup_logging(args.verbose)

    logging.debug("Parsed arguments: %s", args)

    db_path = Path(args.db)
    media_root = Path(args.root)

    if args.command == "serve":
        from .web.app import create_app
        app = create_app({"DB_PATH": str(db_path), "MEDIA_ROOT": str(media_root)})
        logging.info("Serving %s (media root %s) on http://%s:%d", db_path, media_root, args.host, args.port)
        app.run(host=args.host, port=args.port, debug=args.debug)
        return 0

    logging.info("Using database: %s", db_path)
    init_db_if_needed(db_path)
    db_manager = DatabaseManager(db_path)
    blob_store = BlobStore(media_root)
    logging.debug("Database manager initialized.")

    try:
        if args.command == "ingest":
            logging.info("Ingesting %d path(s)", len(args.paths))
            return cmd_ingest(db_manager, blob_store, args.paths, args.source, args.json)

        elif args.command == "list":
            return cmd_list(db_manager, args.limit, args.json)

        elif args.command == "search":
            return cmd_search(db_manager, args.term, args.json)

        elif args.command == "show":
            return cmd_show(db_manager, args.id, args.include_data, args.json)

        elif args.command == "update":
            return cmd_update(db_manager, args.id, _update_fields(args), args.json)

        elif args.command == "delete":
            logging.info("Deleting media item %d", args.id)
            return cmd_delete(db_manager, blob_store, args.id, args.json)

        elif args.command == "integrity":
            return cmd_integrity(db_manager, blob_store, args.json)

        elif args.command == "cleanup-orphans":
            return cmd_cleanup_orphans(db_manager, blob_store, args.dry_run, args.json)

        elif args.command == "repair":
            return cmd_repair(db_manager, blob_store, args.cleanup_orphans, args.remove_missing,
                              not args.apply, args.json)

        elif args.command == "reclaim":
            return cmd_reclaim(db_manager, args.json)

        elif args.command == "export":
            return cmd_export(db_manager, args.out, args.json)

        elif args.command == "import":
            logging.info("Importing from %s", args.file)
            return cmd_import(db_manager, args.file, args.json)

        elif args.command == "stats":
            cmd_show_stats(db_manager, blob_store, args.detailed, args.json)
            return 0

    except KeyboardInterrupt:
        if args.json:
            from .jsonio import error
            return error(args.command, "Operation interrupted by user", code=130)
        logging.warning("Operation interrupted by user.")
        return 130
    except Exception as e:
        if args.json:
            from .jsonio import error
            debug_info = {"exception_type": type(e).__name__} if args.verbose else None
            return error(args.command, str(e), debug=debug_info, code=1)
        logging.error("Error occurred: %s", e, exc_info=args.verbose)
        return 1
    finally:
        db_manager.close()


if __name__ == "__main__":
    sys.exit(main())
