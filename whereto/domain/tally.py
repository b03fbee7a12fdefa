"""Ranked-choice ballot scoring for tiered group decisions.

Pure domain functions, no DB access, fully deterministic. The random
tie-break lives in the service layer and reuses ``weighted_choice``.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from whereto.schemas.decisions import Ballot, VoteBreakdown

# 1st choice = 3 points, 2nd = 2, 3rd = 1, anything lower = 0
TOP_RANK_POINTS = 3


def points_for_rank(index: int) -> int:
    """Points earned by the restaurant at 0-based position ``index``."""
    return max(0, TOP_RANK_POINTS - index)


@dataclass
class TallyResult:
    """Point totals and the restaurants sharing the top score."""

    scores: dict[str, int]
    breakdown: dict[str, VoteBreakdown]
    leaders: list[str]
    top_score: int
    ballot_count: int
    ignored_ids: set[str] = field(default_factory=set)

    @property
    def is_tie(self) -> bool:
        return len(self.leaders) > 1


def tally_ballots(ballots: Sequence[Ballot], restaurant_ids: Sequence[str]) -> TallyResult:
    """Score ballots against the restaurants currently in the collection.

    Ids that are not in the collection are ignored. A restaurant listed twice
    on the same ballot only scores for its first position.

    Args:
        ballots: Latest ballot of each participant
        restaurant_ids: Collection restaurants, in collection order

    Returns:
        TallyResult with leaders listed in collection order
    """
    scores = {restaurant_id: 0 for restaurant_id in restaurant_ids}
    breakdown = {restaurant_id: VoteBreakdown() for restaurant_id in restaurant_ids}
    ignored: set[str] = set()

    for ballot in ballots:
        seen: set[str] = set()
        for index, restaurant_id in enumerate(ballot.ranked_restaurant_ids):
            if restaurant_id not in scores:
                ignored.add(restaurant_id)
                continue
            if restaurant_id in seen:
                continue
            seen.add(restaurant_id)

            points = points_for_rank(index)
            scores[restaurant_id] += points

            entry = breakdown[restaurant_id]
            if index == 0:
                entry.first += 1
            elif index == 1:
                entry.second += 1
            elif index == 2:
                entry.third += 1
            entry.total += points

    top_score = max(scores.values(), default=0)
    leaders = [restaurant_id for restaurant_id, score in scores.items() if score == top_score]

    return TallyResult(
        scores=scores,
        breakdown=breakdown,
        leaders=leaders,
        top_score=top_score,
        ballot_count=len(ballots),
        ignored_ids=ignored,
    )


def describe_tally(tally: TallyResult, winner_id: str) -> str:
    """Audit string for a tiered result."""
    if not tally.is_tie:
        return f"Clear winner with {tally.top_score} points ({tally.ballot_count} votes total)"
    return (
        f"Tie between {len(tally.leaders)} restaurants with {tally.top_score} points each "
        f"({tally.ballot_count} votes total). Selected {winner_id} by weighted random tie-break."
    )
