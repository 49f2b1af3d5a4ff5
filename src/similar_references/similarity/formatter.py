"""
Display formatting for similarity counts.

Presentation only: rankings always sort on the raw count.
"""

from __future__ import annotations

import math
from typing import Optional, Union

from ..core.types import DisplayMode

DisplayValue = Union[int, str, None]


def percentage(raw_count: int, normalization_total: int) -> Optional[int]:
    """
    Raw count as a whole percentage of the total, rounding halves up.

    Returns None when the total is zero.
    """
    if not normalization_total:
        return None
    return int(math.floor(raw_count * 100 / normalization_total + 0.5))


class RankingFormatter:
    """Renders a raw similarity count as a count or a percentage."""

    def __init__(self, mode: DisplayMode = DisplayMode.percentage, percent_suffix: bool = True):
        self.mode = DisplayMode(mode)
        self.percent_suffix = percent_suffix

    def format(
        self,
        raw_count: int,
        mode: Optional[DisplayMode] = None,
        normalization_total: int = 0,
        suffix: Optional[bool] = None,
    ) -> DisplayValue:
        """
        Format one row's similarity.

        Args:
            raw_count: Aggregate overlap count for the row
            mode: "count" or "percentage"; defaults to the formatter's mode
            normalization_total: Denominator for percentages
            suffix: Append "%" to percentages; defaults to the formatter's setting

        Returns:
            The count, the percentage (int, or str when suffixed), or None
            when a percentage has no total to divide by
        """
        mode = DisplayMode(mode) if mode is not None else self.mode
        suffix = self.percent_suffix if suffix is None else suffix

        if mode == DisplayMode.count:
            return int(raw_count)

        value = percentage(raw_count, normalization_total)
        if value is None:
            return None
        return f"{value}%" if suffix else value
