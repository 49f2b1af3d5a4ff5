"""
Similar References service implementation.

Provides a clean interface over the similarity components with database
connection management: aggregate overlap, build the listing query, run it
and format each row.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union

from ...core.config import Settings, get_settings
from ...core.types import DisplayMode, MatchMode, SortOrder
from ...query_builder import Column, OrderBy, SelectQuery
from ...similarity import (
    BaseRelation,
    DatabaseFieldCatalog,
    InvalidArgumentError,
    OverlapFinder,
    QueryPlanBuilder,
    RankingFormatter,
    ReferenceFieldCatalog,
    SimilarityAggregator,
    SimilarityResult,
    TargetIdResolver,
    normalize_source_ids,
)
from ...similarity.fields import FieldSelection

if TYPE_CHECKING:
    from ...connection import SQLiteDB
    from ...pg_connection import PostgresDB

logger = logging.getLogger(__name__)

_ARGUMENT_RE = re.compile(r"^\d+(?:[+,]\d+)*$")


def parse_argument(argument: Union[str, int]) -> tuple[int, ...]:
    """
    Parse a listing argument into source entity ids.

    Accepts a single id ("12"), or several joined by "+" or "," ("12+15", "12,15").

    Raises:
        InvalidArgumentError: If the argument is not in one of those forms
    """
    if isinstance(argument, int):
        return normalize_source_ids(argument)
    text = str(argument).strip().replace(" ", "+")
    if not _ARGUMENT_RE.match(text):
        raise InvalidArgumentError(f"Invalid similarity argument: {argument!r}")
    return normalize_source_ids(re.split(r"[+,]", text))


@dataclass(frozen=True)
class SimilarRow:
    """One ranked listing row."""

    entity_id: int
    similarity: int
    display: Union[int, str, None]


@dataclass
class SimilarListing:
    """A page of similar entities plus the evaluation that produced it."""

    source_ids: tuple[int, ...]
    qualifies: bool
    normalization_total: int
    fields: list[str]
    total: int = 0
    page: int = 1
    page_size: int = 20
    results: list[SimilarRow] = field(default_factory=list)


class SimilarReferencesService:
    """
    Similarity listing service.

    Runs one evaluation per call; nothing is cached between calls.

    Features:
    - Field selection defaulting to every catalog reference field
    - Any/all matching across fields
    - Count or percentage display with optional suffix
    """

    def __init__(
        self,
        db: Union["SQLiteDB", "PostgresDB"],
        catalog: Optional[ReferenceFieldCatalog] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the service.

        Args:
            db: Database connection (SQLiteDB or PostgresDB)
            catalog: Field catalog (defaults to the field_storage_config relation)
            settings: Settings (defaults to the cached application settings)
        """
        self._db = db
        self._settings = settings or get_settings()
        self._catalog = catalog if catalog is not None else DatabaseFieldCatalog(db)
        self._aggregator = SimilarityAggregator(
            TargetIdResolver(db),
            OverlapFinder(db),
            self._catalog,
            entity_type=self._settings.entity_type,
            target_types=self._settings.catalog_target_types,
        )
        self._planner = QueryPlanBuilder(
            BaseRelation(alias="base", id_column=self._settings.base_id_column)
        )

    def available_fields(self) -> dict[str, list[str]]:
        """Catalog field names per target type."""
        return {
            target_type: self._catalog.reference_fields(self._settings.entity_type, target_type)
            for target_type in self._settings.catalog_target_types
        }

    def evaluate(
        self,
        argument: Union[str, int, tuple[int, ...], list[int]],
        fields: FieldSelection = None,
    ) -> SimilarityResult:
        """Aggregate overlap for the given source argument."""
        if isinstance(argument, (str, int)):
            source_ids = parse_argument(argument)
        else:
            source_ids = normalize_source_ids(argument)
        return self._aggregator.aggregate(source_ids, fields)

    def build_listing_query(
        self,
        result: SimilarityResult,
        include_source: Optional[bool] = None,
        order: Optional[SortOrder] = None,
        match: Optional[MatchMode] = None,
    ) -> SelectQuery:
        """Merge the similarity plan into a listing query over the primary relation."""
        settings = self._settings
        include_source = settings.include_source_default if include_source is None else include_source
        order = SortOrder(order or settings.default_sort_order)
        match = MatchMode(match or settings.default_match_mode)

        base_id = Column("base", settings.base_id_column)
        query = SelectQuery(settings.base_table, "base", columns=((base_id, "entity_id"),))
        query.merge(
            self._planner.build_plan(
                result.material_fields,
                result.source_ids,
                include_source=include_source,
                match=match,
                order=order,
            )
        )
        # Stable tie-break after the score
        query.order(OrderBy(base_id, SortOrder.ASC))
        return query

    def list_similar(
        self,
        argument: Union[str, int, tuple[int, ...], list[int]],
        fields: FieldSelection = None,
        include_source: Optional[bool] = None,
        display: Optional[DisplayMode] = None,
        percent_suffix: Optional[bool] = None,
        order: Optional[SortOrder] = None,
        match: Optional[MatchMode] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> SimilarListing:
        """
        Get a page of entities similar to the argument's source entities.

        When no field is material the listing is reported empty and no
        listing query is run.

        Args:
            argument: Source id(s), e.g. 12, "12+15" or [12, 15]
            fields: Field selection; empty means every catalog field
            include_source: Keep the sources in the results
            display: "count" or "percentage"
            percent_suffix: Append "%" to percentages
            order: Sort direction on the raw count
            match: "any" or "all" fields must match
            page: 1-indexed page number
            page_size: Rows per page

        Returns:
            SimilarListing with formatted rows
        """
        if page < 1 or page_size < 1:
            raise InvalidArgumentError(f"Invalid page {page} or page size {page_size}")

        settings = self._settings
        result = self.evaluate(argument, fields)
        listing = SimilarListing(
            source_ids=result.source_ids,
            qualifies=result.qualifies,
            normalization_total=result.normalization_total,
            fields=result.field_names,
            page=page,
            page_size=page_size,
        )
        if not result.qualifies:
            logger.info("No material reference fields for %s", list(result.source_ids))
            return listing

        query = self.build_listing_query(result, include_source, order, match)
        query.paginate(page_size, (page - 1) * page_size)

        count_sql, count_params = query.compile_count(self._db.placeholder)
        count_row = self._db.fetchone(count_sql, tuple(count_params))
        listing.total = int(count_row["count"]) if count_row else 0

        sql, params = query.compile(self._db.placeholder)
        rows = self._db.fetchall(sql, tuple(params))

        formatter = RankingFormatter(
            display or settings.default_display_mode,
            settings.default_percent_suffix if percent_suffix is None else percent_suffix,
        )
        listing.results = [
            SimilarRow(
                entity_id=int(row["entity_id"]),
                similarity=int(row["similarity"]),
                display=formatter.format(
                    int(row["similarity"]),
                    normalization_total=result.normalization_total,
                ),
            )
            for row in rows
        ]
        return listing

    def get_status(self) -> dict[str, Any]:
        """Get service status."""
        return {
            "service": "similar_references",
            "entity_type": self._settings.entity_type,
            "base_table": self._settings.base_table,
            "target_types": list(self._settings.catalog_target_types),
            "methodology": {
                "algorithm": "Exact-value overlap in reference fields",
                "count": "One unit per matching entity per field",
                "percentage": "Count over the sum of per-field overlap sizes",
            },
        }


def get_similar_references_service(
    db: Union["SQLiteDB", "PostgresDB"],
    catalog: Optional[ReferenceFieldCatalog] = None,
) -> SimilarReferencesService:
    """
    Create a similarity service bound to a database.

    Args:
        db: Database connection

    Returns:
        SimilarReferencesService instance
    """
    return SimilarReferencesService(db, catalog=catalog)
