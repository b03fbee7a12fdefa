"""Re-export all models so Base.metadata sees them."""

from whereto.db.models.collection import Collection
from whereto.db.models.decision import Decision
from whereto.db.models.decision_ballot import DecisionBallot
from whereto.db.models.group import Group
from whereto.db.models.restaurant import Restaurant

__all__ = [
    "Collection",
    "Decision",
    "DecisionBallot",
    "Group",
    "Restaurant",
]
