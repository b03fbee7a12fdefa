"""Weighted random selection over restaurants.

One draw routine serves the personal lottery, the group lottery and the
tie-break of a tiered tally.
"""

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from whereto.domain.weights import calculate_restaurant_weight, selection_count
from whereto.schemas.decisions import Decision


@dataclass(frozen=True)
class WeightedCandidate:
    """A restaurant with the weight used for the draw."""

    restaurant_id: str
    weight: float
    selection_count: int = 0


def build_candidates(
    restaurant_ids: Sequence[str],
    history: Sequence[Decision],
    now: datetime | None = None,
) -> list[WeightedCandidate]:
    """Weigh every restaurant against ``history``, keeping collection order."""
    return [
        WeightedCandidate(
            restaurant_id=restaurant_id,
            weight=calculate_restaurant_weight(restaurant_id, history, now=now),
            selection_count=selection_count(restaurant_id, history),
        )
        for restaurant_id in restaurant_ids
    ]


def weighted_choice(candidates: Sequence[WeightedCandidate], rng: random.Random) -> WeightedCandidate:
    """Pick one candidate with probability proportional to its weight.

    Draws u in [0, total) and walks the candidates in order, subtracting each
    weight; the first candidate that brings the remainder to <= 0 wins. If
    floating-point drift leaves the remainder positive, the last candidate
    is returned.

    Raises:
        ValueError: If ``candidates`` is empty
    """
    if not candidates:
        raise ValueError("Cannot select from an empty candidate list")

    total_weight = sum(c.weight for c in candidates)
    remaining = rng.random() * total_weight

    for candidate in candidates:
        remaining -= candidate.weight
        if remaining <= 0:
            return candidate

    return candidates[-1]


def weights_snapshot(candidates: Iterable[WeightedCandidate]) -> dict[str, float]:
    return {c.restaurant_id: c.weight for c in candidates}


def describe_selection(candidate: WeightedCandidate, for_group: bool = False) -> str:
    """Audit string stored in the decision result."""
    subject = "weighted random algorithm for group" if for_group else "weighted random algorithm"
    return (
        f"Selected using {subject}. "
        f"Weight: {candidate.weight:.2f}, Previous selections: {candidate.selection_count}"
    )
