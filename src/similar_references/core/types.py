"""
Core types and constants for Similar References.

This module provides:
- DisplayMode, SortOrder and MatchMode enums shared by the service, API and CLI
- Reference target types queried from the field catalog
"""

from enum import Enum


class DisplayMode(str, Enum):
    """How a raw similarity count is rendered."""

    count = "count"
    percentage = "percentage"


class SortOrder(str, Enum):
    """Sort direction for the similarity ranking."""

    ASC = "ASC"
    DESC = "DESC"


class MatchMode(str, Enum):
    """
    How multiple material fields combine in the listing query.

    any: an entity sharing a reference in at least one field is listed.
    all: an entity must share a reference in every material field.
    """

    any = "any"
    all = "all"


# Catalog target types: "node" references other content entities, "user" references accounts.
TARGET_TYPE_ENTITY = "node"
TARGET_TYPE_USER = "user"
DEFAULT_TARGET_TYPES = (TARGET_TYPE_ENTITY, TARGET_TYPE_USER)

# Field kind stored in the catalog for reference fields.
ENTITY_REFERENCE = "entity_reference"

# Relation holding the field catalog (one row per configured field).
FIELD_CATALOG_TABLE = "field_storage_config"
