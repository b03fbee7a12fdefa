"""Tests for ranked-choice ballot scoring."""

import pytest

from whereto.domain.tally import describe_tally, points_for_rank, tally_ballots
from whereto.schemas.decisions import Ballot

pytestmark = pytest.mark.unit

RESTAURANTS = ["r-a", "r-b", "r-c"]


def _ballot(user_id: str, *ranking: str) -> Ballot:
    return Ballot(user_id=user_id, ranked_restaurant_ids=list(ranking))


def test_points_for_rank():
    assert [points_for_rank(i) for i in range(5)] == [3, 2, 1, 0, 0]


def test_clear_winner():
    tally = tally_ballots([_ballot("u1", "r-a", "r-b", "r-c"), _ballot("u2", "r-a", "r-c", "r-b")], RESTAURANTS)

    assert tally.scores == {"r-a": 6, "r-b": 3, "r-c": 3}
    assert tally.leaders == ["r-a"]
    assert tally.top_score == 6
    assert not tally.is_tie
    assert describe_tally(tally, "r-a") == "Clear winner with 6 points (2 votes total)"


def test_tie_at_the_top():
    tally = tally_ballots([_ballot("u1", "r-a", "r-b", "r-c"), _ballot("u2", "r-b", "r-a", "r-c")], RESTAURANTS)

    assert tally.scores == {"r-a": 5, "r-b": 5, "r-c": 2}
    assert tally.leaders == ["r-a", "r-b"]
    assert tally.is_tie
    assert describe_tally(tally, "r-b") == (
        "Tie between 2 restaurants with 5 points each (2 votes total). "
        "Selected r-b by weighted random tie-break."
    )


def test_vote_breakdown_counts_positions():
    tally = tally_ballots([_ballot("u1", "r-a", "r-b", "r-c"), _ballot("u2", "r-b", "r-a", "r-c")], RESTAURANTS)

    a = tally.breakdown["r-a"]
    c = tally.breakdown["r-c"]
    assert (a.first, a.second, a.third, a.total) == (1, 1, 0, 5)
    assert (c.first, c.second, c.third, c.total) == (0, 0, 2, 2)


def test_unknown_ids_are_ignored_without_shifting_points():
    tally = tally_ballots([_ballot("u1", "r-gone", "r-b", "r-a")], RESTAURANTS)

    assert tally.scores == {"r-a": 1, "r-b": 2, "r-c": 0}
    assert tally.ignored_ids == {"r-gone"}


def test_duplicate_id_scores_first_position_only():
    tally = tally_ballots([_ballot("u1", "r-a", "r-a", "r-b")], RESTAURANTS)

    assert tally.scores == {"r-a": 3, "r-b": 1, "r-c": 0}
    assert tally.breakdown["r-a"].second == 0


def test_positions_beyond_third_score_nothing():
    tally = tally_ballots([_ballot("u1", "r-x", "r-y", "r-z", "r-a")], RESTAURANTS)

    assert tally.scores["r-a"] == 0


def test_all_zero_scores_tie_across_collection():
    tally = tally_ballots([_ballot("u1", "r-unknown")], RESTAURANTS)

    assert tally.top_score == 0
    assert tally.leaders == RESTAURANTS
