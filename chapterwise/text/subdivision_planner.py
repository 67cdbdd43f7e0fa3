"""Token-budget subdivision planning.

Maps a chapter token count to the number of subchapters requested from the
model: one subchapter per `unit_size` tokens, clamped to `[min_count, max_count]`.
"""

from __future__ import annotations

import math

from ..models.datatypes import SubdivisionPlan


class SubdivisionPlanner:
    """Plan how many subchapters a chapter should be split into."""

    DEFAULT_UNIT_SIZE = 700
    DEFAULT_MIN_COUNT = 1
    DEFAULT_MAX_COUNT = 15

    def plan(
        self,
        token_count: int,
        unit_size: int = DEFAULT_UNIT_SIZE,
        min_count: int = DEFAULT_MIN_COUNT,
        max_count: int = DEFAULT_MAX_COUNT,
    ) -> SubdivisionPlan:
        """Return `clamp(ceil(token_count / unit_size), min_count, max_count)`."""

        if unit_size <= 0:
            raise ValueError("unit_size must be a positive integer.")
        if min_count < 1:
            raise ValueError("min_count must be at least 1.")
        if min_count > max_count:
            raise ValueError("min_count must not exceed max_count.")

        sections = math.ceil(max(0, token_count) / unit_size)
        return SubdivisionPlan(target_count=max(min_count, min(max_count, sections)))
