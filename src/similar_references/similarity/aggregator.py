"""
Similarity aggregation across reference fields.

Combines per-field overlap into one similarity index for a source entity
(or several), decides whether the listing should run at all, and computes
the normalization total used for percentage display.

Count semantics: every field contributes one unit per matching entity,
however many of the source's target ids that entity shares through the
field. An entity matching through two fields therefore counts 2.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dataclass_field
from typing import Iterable, Optional, Sequence, Union

from ..core.types import DEFAULT_TARGET_TYPES, SortOrder
from .catalog import ReferenceFieldCatalog, collect_reference_fields
from .fields import FieldSelection, ReferenceField, normalize_field_selection
from .overlap import FieldOverlapResult, OverlapFinder
from .resolver import TargetIdResolver

logger = logging.getLogger(__name__)

# Largest id a signed 64-bit INTEGER column can hold
MAX_ENTITY_ID = 2**63 - 1


class InvalidArgumentError(ValueError):
    """A source entity argument that is not a list of positive ids."""


def normalize_source_ids(source_entity_ids: Union[int, Iterable[int]]) -> tuple[int, ...]:
    """Coerce one id or many into a de-duplicated tuple of positive ints."""
    if isinstance(source_entity_ids, (int, str)):
        source_entity_ids = [source_entity_ids]
    ids: dict[int, None] = {}
    for value in source_entity_ids:
        try:
            entity_id = int(value)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid entity id: {value!r}") from e
        if entity_id <= 0:
            raise InvalidArgumentError(f"Entity ids must be positive: {value!r}")
        if entity_id > MAX_ENTITY_ID:
            raise InvalidArgumentError(f"Entity id out of range: {value!r}")
        ids.setdefault(entity_id, None)
    if not ids:
        raise InvalidArgumentError("At least one source entity id is required")
    return tuple(ids)


@dataclass(frozen=True)
class SimilarityResult:
    """Outcome of one aggregation; rebuilt on every evaluation."""

    source_ids: tuple[int, ...]
    index: dict[int, int] = dataclass_field(default_factory=dict)
    material_fields: tuple[FieldOverlapResult, ...] = ()
    normalization_total: int = 0

    @property
    def qualifies(self) -> bool:
        """At least one field produced overlap."""
        return bool(self.material_fields)

    @property
    def field_names(self) -> list[str]:
        return [result.field.name for result in self.material_fields]

    @property
    def candidates(self) -> dict[int, int]:
        """The index without the source entities, which always overlap themselves."""
        return {
            entity_id: count
            for entity_id, count in self.index.items()
            if entity_id not in self.source_ids
        }

    def ranking(
        self,
        order: SortOrder = SortOrder.DESC,
        include_source: bool = False,
    ) -> list[int]:
        """
        Entity ids sorted by aggregate count, ties broken by ascending id.

        Source entities are left out unless include_source is set.
        """
        sign = -1 if SortOrder(order) == SortOrder.DESC else 1
        candidates = [
            entity_id
            for entity_id in self.index
            if include_source or entity_id not in self.source_ids
        ]
        return sorted(candidates, key=lambda entity_id: (sign * self.index[entity_id], entity_id))


class SimilarityAggregator:
    """
    Builds the similarity index for a source entity.

    Fields are taken from an explicit selection, or from every catalog field
    when the selection is empty. Fields with no target ids or no overlap are
    pruned so the query plan never references them.
    """

    def __init__(
        self,
        resolver: TargetIdResolver,
        finder: OverlapFinder,
        catalog: Optional[ReferenceFieldCatalog] = None,
        entity_type: str = "node",
        target_types: Sequence[str] = DEFAULT_TARGET_TYPES,
    ):
        """
        Args:
            resolver: Reads source target ids per field
            finder: Finds overlapping entities per field
            catalog: Field catalog; without one, explicit selections are trusted as-is
            entity_type: Entity type owning the fields
            target_types: Target types unioned when the selection is empty
        """
        self.resolver = resolver
        self.finder = finder
        self.catalog = catalog
        self.entity_type = entity_type
        self.target_types = tuple(target_types)

    def available_fields(self) -> list[str]:
        """All catalog field names for the configured target types."""
        if self.catalog is None:
            return []
        return collect_reference_fields(self.catalog, self.entity_type, self.target_types)

    def select_fields(self, field_selection: FieldSelection = None) -> list[ReferenceField]:
        """
        Resolve a configured selection into fields to evaluate.

        Names missing from the catalog (removed or renamed since the selection
        was saved) are skipped with a warning.

        Raises:
            InvalidFieldError: If a selected name is not a valid field machine name
        """
        names = normalize_field_selection(field_selection)
        fields = [ReferenceField(name, self.entity_type) for name in names]

        if self.catalog is None:
            return fields

        available = self.available_fields()
        if not fields:
            return [ReferenceField(name, self.entity_type) for name in available]

        known = set(available)
        selected = []
        for field in fields:
            if field.name in known:
                selected.append(field)
            else:
                logger.warning("Skipping unknown reference field %s", field.name)
        return selected

    def aggregate(
        self,
        source_entity_ids: Union[int, Iterable[int]],
        field_selection: FieldSelection = None,
    ) -> SimilarityResult:
        """
        Compute the similarity index for one or more source entities.

        Target ids are unioned across sources per field. A row-store failure
        in any field aborts the whole evaluation.

        Args:
            source_entity_ids: Source entity id, or several
            field_selection: Field names (or a checkbox-style mapping); empty means all

        Returns:
            SimilarityResult with the index, material fields and normalization total
        """
        source_ids = normalize_source_ids(source_entity_ids)
        fields = self.select_fields(field_selection)

        index: dict[int, int] = {}
        material: list[FieldOverlapResult] = []
        total = 0

        for field in fields:
            target_ids: frozenset[int] = frozenset()
            for source_id in source_ids:
                target_ids |= self.resolver.resolve(field, source_id)

            if not target_ids:
                logger.debug("Pruning field %s: source has no target ids", field.name)
                continue

            overlap = self.finder.find_overlap(field, target_ids)
            if not overlap.is_material:
                logger.debug("Pruning field %s: no overlapping entities", field.name)
                continue

            for entity_id in overlap.entity_ids:
                index[entity_id] = index.get(entity_id, 0) + 1
            total += len(overlap)
            material.append(overlap)

        result = SimilarityResult(
            source_ids=source_ids,
            index=index,
            material_fields=tuple(material),
            normalization_total=total,
        )
        logger.info(
            "Similarity for %s: %d of %d fields material, %d entities, total %d",
            list(source_ids), len(material), len(fields), len(index), total,
        )
        return result
