"""Decision model: one personal or group restaurant decision."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB

from whereto.db.base import Base


class Decision(Base):
    __tablename__ = "decisions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    kind = Column(String(20), nullable=False)  # personal, group
    collection_id = Column(String(64), ForeignKey("collections.id"), nullable=False, index=True)
    group_id = Column(String(64), ForeignKey("groups.id"), nullable=True, index=True)

    participants = Column(JSONB, nullable=False, default=list)
    method = Column(String(20), nullable=False)  # random, tiered, manual
    status = Column(String(20), nullable=False, default="active")  # active, completed, expired

    deadline = Column(DateTime(timezone=True), nullable=False)
    visit_date = Column(DateTime(timezone=True), nullable=False)

    # Set exactly once, when status becomes completed
    result = Column(JSONB, nullable=True)
    # Incremented with every ballot write; completion checks it
    version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_decisions_history", "collection_id", "kind", "status", "created_at"),
    )
