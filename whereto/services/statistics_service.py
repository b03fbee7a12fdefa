"""StatisticsService: per-collection selection statistics and decision history."""

from datetime import UTC, datetime

from whereto.core.exceptions import CollectionNotFound
from whereto.domain.weights import calculate_restaurant_weight, last_selected, selection_count
from whereto.schemas.decisions import (
    DecisionKind,
    DecisionStatistics,
    HistoryPage,
    HistoryQuery,
    RestaurantStatistics,
)
from whereto.services.selection_service import DEFAULT_HISTORY_LIMIT
from whereto.store.protocol import DecisionStore


class StatisticsService:
    """Read-only views over completed decisions."""

    def __init__(self, store: DecisionStore, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.store = store
        self.history_limit = history_limit

    async def get_statistics(self, collection_id: str, now: datetime | None = None) -> DecisionStatistics:
        """Selection count, last pick and current weight of every restaurant.

        Uses the same personal history window as the lottery, so
        ``current_weight`` is exactly what the next draw would use.

        Raises:
            CollectionNotFound
        """
        now = now or datetime.now(UTC)

        if await self.store.get_collection(collection_id) is None:
            raise CollectionNotFound()

        history = await self.store.get_recent_completed_decisions(
            collection_id, DecisionKind.PERSONAL, self.history_limit
        )
        restaurants = await self.store.get_restaurants_in_collection(collection_id)

        return DecisionStatistics(
            total_decisions=len(history),
            restaurants=[
                RestaurantStatistics(
                    restaurant_id=restaurant.id,
                    name=restaurant.name,
                    selection_count=selection_count(restaurant.id, history),
                    last_selected=last_selected(restaurant.id, history),
                    current_weight=calculate_restaurant_weight(restaurant.id, history, now=now),
                )
                for restaurant in restaurants
            ],
        )

    async def get_history(self, query: HistoryQuery) -> HistoryPage:
        decisions, total = await self.store.list_decision_history(query)
        return HistoryPage(decisions=decisions, total=total, offset=query.offset, limit=query.limit)
