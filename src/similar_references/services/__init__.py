"""
Services module for Similar References.

This module provides business logic services:
- similarity: Reference-overlap similarity listings

Usage:
    from similar_references.services import SimilarReferencesService
"""

from .similarity import SimilarReferencesService, get_similar_references_service

__all__ = [
    "SimilarReferencesService",
    "get_similar_references_service",
]
