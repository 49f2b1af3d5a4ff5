"""
Similar References

Ranks the entities of a corpus by how many reference field values (tags,
categories, related-content links) they share with a source entity, and
expresses the ranking as a composable listing query over the row store.

Key Features:
- Per-request evaluation, nothing cached between requests
- Field selection defaulting to every catalog reference field
- Count or percentage display
- SQLite and PostgreSQL row stores

Usage:
    from similar_references import SimilarReferencesService, get_db

    db = get_db()
    service = SimilarReferencesService(db)
    listing = service.list_similar("42", fields=["field_tags"])
    for row in listing.results:
        print(row.entity_id, row.display)
"""

from .connection import SQLiteDB, get_sqlite_db
from .pg_connection import PostgresDB, get_db
from .schema import init_database
from .services.similarity import (
    SimilarListing,
    SimilarReferencesService,
    SimilarRow,
    parse_argument,
)
from .similarity import (
    QueryPlanBuilder,
    RankingFormatter,
    ReferenceField,
    SimilarityAggregator,
    SimilarityResult,
)

__all__ = [
    # Connection
    "SQLiteDB",
    "PostgresDB",
    "get_db",
    "get_sqlite_db",
    # Schema
    "init_database",
    # Service
    "SimilarReferencesService",
    "SimilarListing",
    "SimilarRow",
    "parse_argument",
    # Core components
    "QueryPlanBuilder",
    "RankingFormatter",
    "ReferenceField",
    "SimilarityAggregator",
    "SimilarityResult",
]
