"""
Reference-overlap similarity.

Scores every entity by how many reference fields it shares values with a
source entity, and turns the result into a composable listing query:

    from similar_references.similarity import (
        DatabaseFieldCatalog, OverlapFinder, QueryPlanBuilder,
        SimilarityAggregator, TargetIdResolver,
    )

    aggregator = SimilarityAggregator(
        TargetIdResolver(db), OverlapFinder(db), DatabaseFieldCatalog(db)
    )
    result = aggregator.aggregate(42, ["field_tags"])
    if result.qualifies:
        fragment = QueryPlanBuilder().build_plan(result.material_fields, result.source_ids)
"""

from .aggregator import (
    InvalidArgumentError,
    SimilarityAggregator,
    SimilarityResult,
    normalize_source_ids,
)
from .catalog import (
    DatabaseFieldCatalog,
    ReferenceFieldCatalog,
    StaticFieldCatalog,
    collect_reference_fields,
)
from .fields import InvalidFieldError, ReferenceField, normalize_field_selection
from .formatter import RankingFormatter, percentage
from .overlap import FieldOverlapResult, OverlapFinder
from .plan import SCORE_ALIAS, BaseRelation, QueryPlanBuilder
from .resolver import TargetIdResolver

__all__ = [
    "BaseRelation",
    "DatabaseFieldCatalog",
    "FieldOverlapResult",
    "InvalidArgumentError",
    "InvalidFieldError",
    "OverlapFinder",
    "QueryPlanBuilder",
    "RankingFormatter",
    "ReferenceField",
    "ReferenceFieldCatalog",
    "SCORE_ALIAS",
    "SimilarityAggregator",
    "SimilarityResult",
    "StaticFieldCatalog",
    "TargetIdResolver",
    "collect_reference_fields",
    "normalize_field_selection",
    "normalize_source_ids",
    "percentage",
]
