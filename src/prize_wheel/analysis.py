"""
Odds and profitability figures for a pool's probability table.

Everything here is exact: per-item figures follow the geometric
distribution, and the "collect every item" figures use inclusion-exclusion
over subsets of items, which is cheap for catalogs bounded at MAX_ITEMS.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import List, Optional, Sequence

from .models import Pool
from .project_constants import BASIS_POINTS


@dataclass(frozen=True)
class ItemOdds:
    name: str
    value: int
    probability_bp: int
    probability: float
    expected_spins: Optional[float]
    expected_cost: Optional[float]
    profit: Optional[float]
    profit_ratio: Optional[float]


def probability_in_spins(probability: float, spins: int) -> float:
    """P(at least one win in `spins` independent spins)."""
    if spins <= 0 or probability <= 0.0:
        return 0.0
    return 1.0 - (1.0 - probability) ** spins


def expected_spins(probability: float) -> Optional[float]:
    if probability <= 0.0:
        return None
    return 1.0 / probability


def recommended_spins(
    probability: float, target: float = 0.8, max_spins: int = 1000
) -> Optional[int]:
    """Fewest spins reaching `target` chance of at least one win, if any."""
    for spins in range(1, max_spins + 1):
        if probability_in_spins(probability, spins) >= target:
            return spins
    return None


def item_odds(pool: Pool) -> List[ItemOdds]:
    out: List[ItemOdds] = []
    for item in pool.items:
        p = item.probability_bp / BASIS_POINTS
        spins = expected_spins(p)
        if spins is None:
            out.append(ItemOdds(item.name, item.value, item.probability_bp, p, None, None, None, None))
            continue
        cost = spins * pool.reference_ticket_price
        profit = item.value - cost
        out.append(
            ItemOdds(
                name=item.name,
                value=item.value,
                probability_bp=item.probability_bp,
                probability=p,
                expected_spins=spins,
                expected_cost=cost,
                profit=profit,
                profit_ratio=profit / cost,
            )
        )
    return out


def _live(weights: Sequence[int]) -> List[float]:
    return [w / BASIS_POINTS for w in weights if w > 0]


def expected_spins_for_all(weights: Sequence[int]) -> Optional[float]:
    """Expected spins to win every item with a non-zero chance at least once."""
    probs = _live(weights)
    if not probs:
        return None
    total = 0.0
    for size in range(1, len(probs) + 1):
        sign = 1.0 if size % 2 else -1.0
        for subset in combinations(probs, size):
            total += sign / sum(subset)
    return total


def probability_of_all_in_spins(weights: Sequence[int], spins: int) -> float:
    """P(every item with a non-zero chance is won at least once in `spins`)."""
    probs = _live(weights)
    if not probs or spins < len(probs):
        return 0.0
    total = 0.0
    for size in range(0, len(probs) + 1):
        sign = 1.0 if size % 2 == 0 else -1.0
        for subset in combinations(probs, size):
            miss = max(0.0, 1.0 - sum(subset))
            total += sign * miss**spins
    return min(1.0, max(0.0, total))


def expected_payout_per_spin(pool: Pool) -> float:
    return sum(i.value * i.probability_bp for i in pool.items) / BASIS_POINTS


def house_edge(pool: Pool) -> float:
    """Share of each ticket price the pool keeps on average."""
    return 1.0 - expected_payout_per_spin(pool) / pool.reference_ticket_price
