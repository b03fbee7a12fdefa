"""DecisionBallot model: one row per (decision, user); resubmission replaces."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB

from whereto.db.base import Base


class DecisionBallot(Base):
    __tablename__ = "decision_ballots"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    decision_id = Column(String(36), ForeignKey("decisions.id"), nullable=False, index=True)
    user_id = Column(String(255), nullable=False)
    ranked_restaurant_ids = Column(JSONB, nullable=False, default=list)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("decision_id", "user_id", name="uq_decision_ballots_decision_user"),
    )
