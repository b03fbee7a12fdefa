"""Decision lifecycle events for notification collaborators.

Published to Redis Pub/Sub as a flat JSON envelope with a 'type'
discriminator. Publication is fire-and-forget: a failure is logged and
never fails the decision operation that triggered it.
"""

import json
from datetime import UTC, datetime

import structlog
from redis.asyncio import Redis

from whereto.schemas.decisions import Decision, DecisionResult

logger = structlog.get_logger(__name__)

DECISIONS_CHANNEL = "decisions:events"


class DecisionEventType:
    """Event type constants for the decisions Pub/Sub channels."""

    DECISION_STARTED = "decision.started"
    DECISION_COMPLETED = "decision.completed"


def group_channel(group_id: str) -> str:
    return f"group:{group_id}:decisions"


class DecisionEventPublisher:
    """Publishes decision events. With no Redis client every publish is a no-op."""

    def __init__(self, redis: Redis | None):
        self.redis = redis

    async def decision_started(self, decision: Decision) -> None:
        await self._publish(
            decision,
            {
                "type": DecisionEventType.DECISION_STARTED,
                "method": decision.method.value,
                "participants": decision.participants,
                "deadline": decision.deadline.isoformat(),
                "visit_date": decision.visit_date.isoformat(),
            },
        )

    async def decision_completed(self, decision: Decision, result: DecisionResult) -> None:
        await self._publish(
            decision,
            {
                "type": DecisionEventType.DECISION_COMPLETED,
                "method": decision.method.value,
                "participants": decision.participants,
                "restaurant_id": result.restaurant_id,
                "selected_at": result.selected_at.isoformat(),
                "reasoning": result.reasoning,
            },
        )

    async def _publish(self, decision: Decision, event: dict) -> None:
        if self.redis is None:
            return

        event.update(
            decision_id=decision.id,
            kind=decision.kind.value,
            collection_id=decision.collection_id,
            group_id=decision.group_id,
            timestamp=datetime.now(UTC).isoformat(),
        )
        payload = json.dumps(event)

        try:
            await self.redis.publish(DECISIONS_CHANNEL, payload)
            if decision.group_id:
                await self.redis.publish(group_channel(decision.group_id), payload)
        except Exception:
            logger.warning(
                "decision_event_publish_failed",
                event_type=event["type"],
                decision_id=decision.id,
                exc_info=True,
            )
