"""
Similarity router - serves listings of entities sharing references with a source.

Endpoints:
- GET /fields - Reference fields available for similarity, per target type
- GET /{argument} - Entities similar to the source entity (or "12+15" for several)

Data:
- Evaluated per request from the reference field relations; nothing is cached
"""

import logging
from typing import Annotated, Union

from fastapi import Depends, Query
from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..dependencies import ServiceDependency
from ..errors import ValidationError
from ..pagination import PaginationParams
from ...core.types import DisplayMode, MatchMode, SortOrder
from ...similarity import InvalidArgumentError, InvalidFieldError

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================


class SimilarEntityResponse(BaseModel):
    """A similar entity with its raw and display similarity."""

    entity_id: int
    similarity: int = Field(ge=0)
    display: Union[int, str, None] = None


class SimilarEntitiesResponse(BaseModel):
    """A page of entities similar to the source entities."""

    source_ids: list[int]
    qualifies: bool
    normalization_total: int
    fields: list[str]
    total: int
    page: int
    page_size: int
    results: list[SimilarEntityResponse]


class ReferenceFieldsResponse(BaseModel):
    """Reference fields per target type."""

    entity_type: str
    fields: dict[str, list[str]]


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/fields", response_model=ReferenceFieldsResponse)
def get_reference_fields(service: ServiceDependency) -> ReferenceFieldsResponse:
    """List the reference fields that can take part in similarity."""
    status = service.get_status()
    return ReferenceFieldsResponse(
        entity_type=status["entity_type"],
        fields=service.available_fields(),
    )


@router.get("/{argument}", response_model=SimilarEntitiesResponse)
def get_similar_entities(
    argument: str,
    service: ServiceDependency,
    pagination: Annotated[PaginationParams, Depends()],
    fields: Annotated[
        list[str] | None, Query(description="Reference fields to compare (default: all)")
    ] = None,
    include_source: Annotated[
        bool | None, Query(description="Include the source entities in the results")
    ] = None,
    display: Annotated[
        DisplayMode | None, Query(description="count or percentage")
    ] = None,
    percent_suffix: Annotated[
        bool | None, Query(description="Append % to percentages")
    ] = None,
    order: Annotated[SortOrder | None, Query(description="DESC or ASC")] = None,
    match: Annotated[
        MatchMode | None, Query(description="any: at least one field matches; all: every field matches")
    ] = None,
) -> SimilarEntitiesResponse:
    """
    Get entities sharing reference field values with the source entity.

    The response includes:
    - similarity: raw number of fields with shared references (sort key)
    - display: the count, or the percentage of the normalization total
    - qualifies: false when no field produced any overlap (results are empty)
    """
    try:
        listing = service.list_similar(
            argument,
            fields=fields,
            include_source=include_source,
            display=display,
            percent_suffix=percent_suffix,
            order=order,
            match=match,
            page=pagination.page,
            page_size=pagination.limit,
        )
    except (InvalidArgumentError, InvalidFieldError) as e:
        raise ValidationError(message=str(e), detail=f"argument={argument}") from e

    return SimilarEntitiesResponse(
        source_ids=list(listing.source_ids),
        qualifies=listing.qualifies,
        normalization_total=listing.normalization_total,
        fields=listing.fields,
        total=listing.total,
        page=listing.page,
        page_size=listing.page_size,
        results=[
            SimilarEntityResponse(
                entity_id=row.entity_id,
                similarity=row.similarity,
                display=row.display,
            )
            for row in listing.results
        ],
    )
