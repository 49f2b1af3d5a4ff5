#!/usr/bin/env python3
"""
Command-line interface for similar references.

Usage:
    similar-references init                          # Create the core schema
    similar-references load corpus.json              # Seed fields and entities from a fixture
    similar-references fields                        # List catalog reference fields
    similar-references similar 42                    # Entities similar to node 42
    similar-references similar 42+57 --field field_tags --display count
    similar-references status
    similar-references serve --port 8000
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .core.config import get_settings
from .core.types import DisplayMode, MatchMode, SortOrder

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("similar_references.cli")


def positive_int(value: str) -> int:
    """argparse type for page numbers and sizes."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value!r}")
    return number


def get_db():
    """Get the configured database connection in write mode."""
    from .pg_connection import get_db as get_configured_db

    return get_configured_db()


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize the database with schema."""
    from .schema import init_database

    db = get_db()

    try:
        logger.info("Initializing corpus database...")
        init_database(db)
        logger.info("Database initialized successfully")
        return 0
    except Exception as e:
        logger.error("Failed to initialize database: %s", e)
        return 1
    finally:
        db.close()


def cmd_load(args: argparse.Namespace) -> int:
    """Seed a corpus from a JSON fixture."""
    from .fixtures import load_corpus_file

    db = get_db()

    try:
        summary = load_corpus_file(db, Path(args.fixture))
    except (OSError, ValueError, KeyError) as e:
        logger.error("Failed to load fixture %s: %s", args.fixture, e)
        return 1
    finally:
        db.close()

    print("\nCorpus loaded")
    print("=" * 50)
    print(f"Fields: {summary['fields']}")
    print(f"Entities: {summary['entities']}")
    print(f"Reference values: {summary['values']}")
    return 0


def cmd_fields(args: argparse.Namespace) -> int:
    """List reference fields available for similarity."""
    from .services.similarity import SimilarReferencesService

    db = get_db()
    try:
        fields = SimilarReferencesService(db).available_fields()
    finally:
        db.close()

    if args.json:
        print(json.dumps(fields, indent=2))
        return 0

    for target_type, names in fields.items():
        print(f"{target_type}:")
        for name in names or ["(none)"]:
            print(f"  {name}")
    return 0


def cmd_similar(args: argparse.Namespace) -> int:
    """Rank entities by shared references with the argument entity."""
    from .services.similarity import SimilarReferencesService
    from .similarity import InvalidArgumentError, InvalidFieldError

    db = get_db()
    try:
        listing = SimilarReferencesService(db).list_similar(
            args.argument,
            fields=args.field,
            include_source=args.include_source,
            display=args.display,
            percent_suffix=args.suffix,
            order=args.order,
            match=args.match,
            page=args.page,
            page_size=args.limit,
        )
    except (InvalidArgumentError, InvalidFieldError) as e:
        logger.error("%s", e)
        return 2
    finally:
        db.close()

    if args.json:
        print(json.dumps({
            "source_ids": list(listing.source_ids),
            "qualifies": listing.qualifies,
            "normalization_total": listing.normalization_total,
            "fields": listing.fields,
            "total": listing.total,
            "results": [
                {"entity_id": row.entity_id, "similarity": row.similarity, "display": row.display}
                for row in listing.results
            ],
        }, indent=2))
        return 0

    if not listing.qualifies:
        print("No similar entities found")
        return 0

    print(f"\nSimilar to {'+'.join(str(i) for i in listing.source_ids)}")
    print(f"Fields: {', '.join(listing.fields)}")
    print("=" * 50)
    for row in listing.results:
        print(f"{row.entity_id:>10}  {row.display}")
    print(f"\n{listing.total} entities (normalization total {listing.normalization_total})")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show database status."""
    from .core.types import FIELD_CATALOG_TABLE
    from .schema import get_schema_version, get_table_counts

    settings = get_settings()
    db = get_db()

    try:
        if not db.is_initialized():
            logger.info("Database is not initialized")
            return 1

        version = get_schema_version(db)
        counts = get_table_counts(db, [settings.base_table, FIELD_CATALOG_TABLE])

        print("\nSimilar References Status")
        print("=" * 50)
        print(f"Backend: {'postgres' if settings.use_postgres else 'sqlite'}")
        if not settings.use_postgres:
            print(f"SQLite path: {settings.sqlite_path}")
        print(f"Schema Version: {version}")
        for table, count in counts.items():
            print(f"{table}: {count} rows")
        return 0
    finally:
        db.close()


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "similar_references.api.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
    )
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Reference-overlap similarity listings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    subparsers.add_parser("init", help="Initialize database schema")

    # load command
    load_parser = subparsers.add_parser("load", help="Seed a corpus from a JSON fixture")
    load_parser.add_argument("fixture", help="Path to the fixture file")

    # fields command
    fields_parser = subparsers.add_parser("fields", help="List reference fields")
    fields_parser.add_argument("--json", action="store_true", help="Print JSON")

    # similar command
    similar_parser = subparsers.add_parser("similar", help="Rank entities similar to a source")
    similar_parser.add_argument("argument", help="Source entity id, or several joined by + or ,")
    similar_parser.add_argument(
        "--field", action="append", help="Reference field to compare (repeatable; default: all)"
    )
    similar_parser.add_argument(
        "--display", choices=[m.value for m in DisplayMode], help="Show count or percentage"
    )
    similar_parser.add_argument(
        "--suffix", action=argparse.BooleanOptionalAction, default=None,
        help="Append %% to percentages",
    )
    similar_parser.add_argument(
        "--include-source", action="store_true", default=None,
        help="Include the source entities in the results",
    )
    similar_parser.add_argument("--order", choices=[o.value for o in SortOrder], help="Sort direction")
    similar_parser.add_argument("--match", choices=[m.value for m in MatchMode], help="any or all fields")
    similar_parser.add_argument("--limit", type=positive_int, default=20, help="Results per page")
    similar_parser.add_argument("--page", type=positive_int, default=1, help="Page number")
    similar_parser.add_argument("--json", action="store_true", help="Print JSON")

    # status command
    subparsers.add_parser("status", help="Show database status")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Port")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "load": cmd_load,
        "fields": cmd_fields,
        "similar": cmd_similar,
        "status": cmd_status,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
