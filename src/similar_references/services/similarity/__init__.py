"""
Similar References service.

    from similar_references.services.similarity import SimilarReferencesService

    service = SimilarReferencesService(db)
    listing = service.list_similar("42", fields=["field_tags"], display="count")
"""

from .service import (
    SimilarListing,
    SimilarReferencesService,
    SimilarRow,
    get_similar_references_service,
    parse_argument,
)

__all__ = [
    "SimilarListing",
    "SimilarReferencesService",
    "SimilarRow",
    "get_similar_references_service",
    "parse_argument",
]
