"""Collection model: a curated restaurant list decisions resolve over."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from whereto.db.base import Base


class Collection(Base):
    __tablename__ = "collections"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    kind = Column(String(20), nullable=False, default="personal")  # personal, group
    owner_id = Column(String(255), nullable=True, index=True)  # user id, or group id for group collections

    # Mixed legacy formats; decoded by whereto.store.refs
    restaurant_refs = Column(JSONB, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
