"""Tests for the weighted random draw."""

import random
from datetime import timedelta

import pytest

from whereto.domain.selection import (
    WeightedCandidate,
    build_candidates,
    describe_selection,
    weighted_choice,
    weights_snapshot,
)

pytestmark = pytest.mark.unit


class FixedRandom:
    """Returns the same uniform value on every draw."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


def test_empty_candidates_raise():
    with pytest.raises(ValueError):
        weighted_choice([], random.Random(0))


def test_single_candidate_always_chosen():
    only = WeightedCandidate("r-a", 0.1)
    assert all(weighted_choice([only], random.Random(i)) is only for i in range(20))


def test_draw_frequency_proportional_to_weight():
    low = WeightedCandidate("r-low", 0.1)
    high = WeightedCandidate("r-high", 1.0)
    rng = random.Random(1234)
    draws = 20_000

    high_count = sum(1 for _ in range(draws) if weighted_choice([low, high], rng) is high)

    assert high_count / draws == pytest.approx(1.0 / 1.1, abs=0.015)


def test_zero_draw_picks_first_candidate():
    candidates = [WeightedCandidate("r-a", 0.5), WeightedCandidate("r-b", 0.5)]
    assert weighted_choice(candidates, FixedRandom(0.0)).restaurant_id == "r-a"


def test_draw_walks_candidates_in_order():
    candidates = [WeightedCandidate("r-a", 1.0), WeightedCandidate("r-b", 1.0), WeightedCandidate("r-c", 2.0)]
    # u = 0.4 * 4.0 = 1.6 lands in the second slot
    assert weighted_choice(candidates, FixedRandom(0.4)).restaurant_id == "r-b"


def test_remainder_left_over_falls_back_to_last():
    candidates = [WeightedCandidate("r-a", 0.1), WeightedCandidate("r-b", 0.2)]
    assert weighted_choice(candidates, FixedRandom(1.0000001)).restaurant_id == "r-b"


def test_build_candidates_keeps_order_and_counts(now, completed_decision):
    history = [completed_decision("r-b", now), completed_decision("r-b", now - timedelta(days=10))]

    candidates = build_candidates(["r-c", "r-b", "r-a"], history, now=now)

    assert [c.restaurant_id for c in candidates] == ["r-c", "r-b", "r-a"]
    assert weights_snapshot(candidates) == {"r-c": 1.0, "r-b": pytest.approx(0.1), "r-a": 1.0}
    assert candidates[1].selection_count == 2


def test_describe_selection():
    candidate = WeightedCandidate("r-a", 0.25, selection_count=3)

    assert describe_selection(candidate) == (
        "Selected using weighted random algorithm. Weight: 0.25, Previous selections: 3"
    )
    assert describe_selection(candidate, for_group=True).startswith(
        "Selected using weighted random algorithm for group."
    )
