from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .errors import ErrorCode, StateError, ValidationError
from .project_constants import BASIS_POINTS

log = logging.getLogger("selector")


@dataclass(frozen=True)
class PrizeRange:
    index: int
    weight: int
    start: int
    end: int  # exclusive


def build_ranges(weights: Sequence[int]) -> Tuple[List[PrizeRange], int]:
    ranges: List[PrizeRange] = []
    cursor = 0
    for i, w in enumerate(weights):
        start = cursor
        end = cursor + w
        ranges.append(PrizeRange(i, w, start, end))
        cursor = end
    return ranges, cursor


def _check_draw(draw: int) -> None:
    if isinstance(draw, bool) or not isinstance(draw, int):
        raise ValidationError(ErrorCode.INVALID_DRAW, f"Draw is not an integer: {draw!r}")
    if not 0 <= draw < BASIS_POINTS:
        raise ValidationError(ErrorCode.INVALID_DRAW, f"Draw out of range: {draw}")


def select_winner(weights: Sequence[int], draw: int) -> int:
    """
    Index of the item whose draw span contains `draw`.

    Spans are laid out in catalog order, so the same (weights, draw) pair
    always picks the same item. Zero-weight items never win.
    """
    _check_draw(draw)

    ranges, total = build_ranges(weights)
    if total <= 0:
        raise StateError(ErrorCode.NO_AVAILABLE_ITEMS)

    ends = [r.end for r in ranges]
    idx = bisect_right(ends, draw)
    if idx < len(ranges):
        return ranges[idx].index

    # Safety net only: a table summing to BASIS_POINTS always covers the draw.
    fallback = max(r.index for r in ranges if r.weight > 0)
    log.warning(
        "Draw %d not covered by weight table (total=%d); falling back to item %d",
        draw,
        total,
        fallback,
    )
    return fallback
