"""Fairness weights for restaurants.

Pure domain functions, no DB access. A restaurant picked recently gets a
lower weight so the lottery favours places the group has not visited lately.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from whereto.schemas.decisions import Decision

WEIGHT_WINDOW_DAYS = 30
MIN_WEIGHT_FRACTION = 0.1  # Floor: a just-picked restaurant keeps 10% of its weight

_ONE_DAY = timedelta(days=1)


def _selections_of(restaurant_id: str, history: Iterable[Decision]) -> list[datetime]:
    return [
        decision.result.selected_at
        for decision in history
        if decision.result is not None and decision.result.restaurant_id == restaurant_id
    ]


def calculate_restaurant_weight(
    restaurant_id: str,
    history: Iterable[Decision],
    base_weight: float = 1.0,
    now: datetime | None = None,
) -> float:
    """Return the weight of a restaurant given past selections.

    Only the most recent selection inside the 30-day window counts; older
    picks do not compound the penalty.

    Args:
        restaurant_id: Restaurant to weigh
        history: Completed decisions for the same collection
        base_weight: Weight of a restaurant with no recent selection
        now: Evaluation time (for deterministic testing)

    Returns:
        A weight in [0.1 * base_weight, base_weight]
    """
    now = now or datetime.now(UTC)
    window_start = now - timedelta(days=WEIGHT_WINDOW_DAYS)

    recent = [at for at in _selections_of(restaurant_id, history) if at >= window_start]
    if not recent:
        return base_weight

    days_since = max((now - max(recent)) // _ONE_DAY, 0)
    multiplier = min(days_since / WEIGHT_WINDOW_DAYS, 1)
    return base_weight * (MIN_WEIGHT_FRACTION + (1 - MIN_WEIGHT_FRACTION) * multiplier)


def selection_count(restaurant_id: str, history: Iterable[Decision]) -> int:
    """Number of decisions in ``history`` that picked the restaurant."""
    return len(_selections_of(restaurant_id, history))


def last_selected(restaurant_id: str, history: Iterable[Decision]) -> datetime | None:
    selections = _selections_of(restaurant_id, history)
    return max(selections) if selections else None
