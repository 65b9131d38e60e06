from __future__ import annotations

import math
from typing import List, Sequence

from .checked_math import checked_sum
from .errors import ArithmeticFault, ErrorCode, ValidationError
from .project_constants import (
    BASIS_POINTS,
    MIN_PROBABILITY_BP,
    U64_MAX,
    WEIGHT_EXPONENT,
)


def _validate(values: Sequence[int], ticket_price: int) -> None:
    if ticket_price <= 0:
        raise ValidationError(ErrorCode.INVALID_TICKET_PRICE)
    if not values:
        raise ValidationError(ErrorCode.NO_ITEMS_PROVIDED)
    if ticket_price > U64_MAX:
        raise ArithmeticFault(ErrorCode.MATH_OVERFLOW, "Ticket price exceeds u64")
    for v in values:
        if v <= 0:
            raise ValidationError(ErrorCode.INVALID_ITEM_PRICE)
    try:
        checked_sum(values)
    except ArithmeticFault as e:
        raise ArithmeticFault(ErrorCode.MATH_OVERFLOW, str(e)) from e


def raw_weights(
    values: Sequence[int], ticket_price: int, exponent: float = WEIGHT_EXPONENT
) -> List[float]:
    """Unnormalized weights: 1 / (value / ticket_price) ** exponent."""
    out: List[float] = []
    for v in values:
        tickets_needed = v / ticket_price
        out.append(1.0 / math.pow(tickets_needed, exponent))
    return out


def largest_remainder(shares: Sequence[float], total: int = BASIS_POINTS) -> List[int]:
    """
    Round real-valued shares to integers summing to `total`.

    Floors every share, then hands the missing units out one at a time by
    largest fractional part, ties broken by ascending index.
    """
    floors = [int(math.floor(s)) for s in shares]
    order = sorted(range(len(shares)), key=lambda i: (-(shares[i] - floors[i]), i))
    missing = total - sum(floors)

    k = 0
    while missing > 0:
        floors[order[k % len(order)]] += 1
        missing -= 1
        k += 1
    # Float noise can push the floors over the total; take back from the
    # smallest remainders.
    for i in reversed(order):
        if missing >= 0:
            break
        if floors[i] > 0:
            floors[i] -= 1
            missing += 1
    return floors


def _enforce_minimum(weights: List[int], shares: Sequence[float]) -> List[int]:
    # One unit at a time from the current largest weight; on ties the item
    # with the smaller share gives, so cheaper items never drop below dearer ones.
    for i in range(len(weights)):
        while weights[i] < MIN_PROBABILITY_BP:
            donor = max(range(len(weights)), key=lambda j: (weights[j], -shares[j], j))
            weights[donor] -= 1
            weights[i] += 1
    return weights


def compute_probabilities(
    values: Sequence[int], ticket_price: int, exponent: float = WEIGHT_EXPONENT
) -> List[int]:
    """
    Basis-point win probabilities for items worth `values` on a wheel whose
    ticket costs `ticket_price`.

    Items cheap relative to the ticket are favoured: the raw weight of an
    item is 1 / (value / ticket_price) ** exponent. The result always sums
    to exactly BASIS_POINTS and gives every item at least
    MIN_PROBABILITY_BP. Same input, same output.
    """
    _validate(values, ticket_price)

    if len(values) == 1:
        return [BASIS_POINTS]

    raw = raw_weights(values, ticket_price, exponent)
    total_raw = math.fsum(raw)
    if not math.isfinite(total_raw) or total_raw <= 0:
        raise ArithmeticFault(ErrorCode.MATH_OVERFLOW, "Degenerate weight sum")

    shares = [r / total_raw * BASIS_POINTS for r in raw]
    weights = _enforce_minimum(largest_remainder(shares), shares)

    if sum(weights) != BASIS_POINTS:
        raise ArithmeticFault(
            ErrorCode.PROBABILITY_SUM_MISMATCH,
            f"Weights sum to {sum(weights)}, expected {BASIS_POINTS}",
        )
    return weights


def probabilities_for_catalog(
    values: Sequence[int],
    available: Sequence[bool],
    ticket_price: int,
    exponent: float = WEIGHT_EXPONENT,
) -> List[int]:
    """
    Full-length probability table for a catalog.

    Only available items are weighted; unavailable ones get 0. When nothing
    is available every entry is 0.
    """
    if len(values) != len(available):
        raise ValueError("values and available must have the same length")
    if ticket_price <= 0:
        raise ValidationError(ErrorCode.INVALID_TICKET_PRICE)

    live = [i for i, ok in enumerate(available) if ok]
    table = [0] * len(values)
    if not live:
        return table

    weights = compute_probabilities([values[i] for i in live], ticket_price, exponent)
    for i, w in zip(live, weights):
        table[i] = w
    return table
