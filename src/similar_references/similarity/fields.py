"""
Reference field naming.

A reference field named ``field_tags`` on entity type ``node`` stores its
values in relation ``node__field_tags``, one row per value, with the owning
entity in ``entity_id`` and the referenced id in ``field_tags_target_id``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

_FIELD_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")

OWNER_COLUMN = "entity_id"
DELTA_COLUMN = "delta"


class InvalidFieldError(ValueError):
    """A reference field name that cannot be mapped onto a relation."""


def validate_field_name(name: str) -> str:
    """Reject names that are not lowercase machine names."""
    if not isinstance(name, str) or not _FIELD_NAME_RE.match(name):
        raise InvalidFieldError(f"Invalid reference field name: {name!r}")
    return name


@dataclass(frozen=True)
class ReferenceField:
    """A multi-valued reference field and where its values are stored."""

    name: str
    entity_type: str = "node"

    def __post_init__(self) -> None:
        validate_field_name(self.name)
        validate_field_name(self.entity_type)

    @property
    def table(self) -> str:
        return f"{self.entity_type}__{self.name}"

    @property
    def column(self) -> str:
        return f"{self.name}_target_id"

    @property
    def owner_column(self) -> str:
        return OWNER_COLUMN

    @property
    def alias(self) -> str:
        """Relation alias used when this field is joined into a listing query."""
        return f"sr_{self.name}"


FieldSelection = Union[Iterable[str], Mapping[str, object], None]


def normalize_field_selection(selection: FieldSelection) -> list[str]:
    """
    Turn a configured field selection into an ordered list of names.

    Accepts a plain iterable of names, or a checkbox-style mapping where
    unselected fields carry a falsy value (``{"field_tags": "field_tags",
    "field_topics": 0}``). Duplicates are dropped, first occurrence wins.
    """
    if not selection:
        return []
    if isinstance(selection, Mapping):
        names = [name for name, value in selection.items() if value]
    elif isinstance(selection, str):
        names = [selection]
    else:
        names = list(selection)
    return list(dict.fromkeys(name.strip() for name in names if name and name.strip()))
