"""Tests for time-decayed restaurant weights.

Pure functions, no store access.
"""

from datetime import timedelta

import pytest

from whereto.domain.weights import calculate_restaurant_weight, last_selected, selection_count

pytestmark = pytest.mark.unit


def test_no_history_gives_base_weight(now):
    assert calculate_restaurant_weight("r-a", [], now=now) == 1.0


def test_selection_outside_window_is_ignored(now, completed_decision):
    history = [completed_decision("r-a", now - timedelta(days=31))]
    assert calculate_restaurant_weight("r-a", history, now=now) == 1.0


def test_selected_just_now_hits_floor(now, completed_decision):
    history = [completed_decision("r-a", now)]
    assert calculate_restaurant_weight("r-a", history, now=now) == pytest.approx(0.1)


def test_five_days_ago_recovers_linearly(now, completed_decision):
    history = [completed_decision("r-a", now - timedelta(days=5))]
    assert calculate_restaurant_weight("r-a", history, now=now) == pytest.approx(0.25)


def test_exactly_thirty_days_ago_is_full_weight(now, completed_decision):
    history = [completed_decision("r-a", now - timedelta(days=30))]
    assert calculate_restaurant_weight("r-a", history, now=now) == pytest.approx(1.0)


def test_partial_days_are_floored(now, completed_decision):
    history = [completed_decision("r-a", now - timedelta(days=5, hours=23))]
    assert calculate_restaurant_weight("r-a", history, now=now) == pytest.approx(0.25)


def test_only_most_recent_selection_counts(now, completed_decision):
    both = [
        completed_decision("r-a", now - timedelta(days=20)),
        completed_decision("r-a", now - timedelta(days=2)),
    ]
    latest_only = [completed_decision("r-a", now - timedelta(days=2))]

    assert calculate_restaurant_weight("r-a", both, now=now) == calculate_restaurant_weight(
        "r-a", latest_only, now=now
    )


def test_other_restaurants_do_not_affect_weight(now, completed_decision):
    history = [completed_decision("r-b", now)]
    assert calculate_restaurant_weight("r-a", history, now=now) == 1.0


def test_base_weight_scales_result(now, completed_decision):
    history = [completed_decision("r-a", now)]
    assert calculate_restaurant_weight("r-a", history, base_weight=2.0, now=now) == pytest.approx(0.2)


def test_future_selection_clamps_to_floor(now, completed_decision):
    history = [completed_decision("r-a", now + timedelta(hours=3))]
    assert calculate_restaurant_weight("r-a", history, now=now) == pytest.approx(0.1)


def test_weight_stays_within_bounds(now, completed_decision):
    for days in range(0, 45):
        history = [completed_decision("r-a", now - timedelta(days=days))]
        weight = calculate_restaurant_weight("r-a", history, now=now)
        assert 0.1 - 1e-9 <= weight <= 1.0


def test_selection_count_and_last_selected(now, completed_decision):
    history = [
        completed_decision("r-a", now - timedelta(days=40)),
        completed_decision("r-a", now - timedelta(days=3)),
        completed_decision("r-b", now),
    ]

    assert selection_count("r-a", history) == 2
    assert last_selected("r-a", history) == now - timedelta(days=3)
    assert selection_count("r-c", history) == 0
    assert last_selected("r-c", history) is None
