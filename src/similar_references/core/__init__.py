"""
Core module for Similar References.

This module provides the foundational components:
- Configuration management (config.py)
- Type definitions (types.py)

Usage:
    from similar_references.core import Settings, get_settings
    from similar_references.core import DisplayMode, SortOrder, MatchMode
"""

from .config import Settings, get_settings
from .types import (
    DEFAULT_TARGET_TYPES,
    ENTITY_REFERENCE,
    DisplayMode,
    MatchMode,
    SortOrder,
)

__all__ = [
    "Settings",
    "get_settings",
    "DisplayMode",
    "MatchMode",
    "SortOrder",
    "DEFAULT_TARGET_TYPES",
    "ENTITY_REFERENCE",
]
