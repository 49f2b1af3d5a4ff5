"""
Dependency injection for API endpoints.

Routes use the synchronous database connection: each similarity evaluation
is a short sequence of blocking reads, and FastAPI runs sync endpoints in
its thread pool.
"""

from typing import Annotated, Any

from fastapi import Depends

from ..pg_connection import close_db as close_global_db
from ..pg_connection import get_db as get_global_db
from ..services.similarity import SimilarReferencesService


def get_db() -> Any:
    """
    Dependency that provides the configured database connection.

    Returns:
        PostgresDB when DATABASE_URL is set, otherwise SQLiteDB
    """
    return get_global_db()


def close_db() -> None:
    """Close the global database connection. Called at app shutdown."""
    close_global_db()


DBDependency = Annotated[Any, Depends(get_db)]


def get_service(db: DBDependency) -> SimilarReferencesService:
    """Build a request-scoped similarity service."""
    return SimilarReferencesService(db)


ServiceDependency = Annotated[SimilarReferencesService, Depends(get_service)]
