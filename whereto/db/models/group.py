"""Group model."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from whereto.db.base import Base


class Group(Base):
    __tablename__ = "groups"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    admin_ids = Column(JSONB, nullable=False, default=list)
    member_ids = Column(JSONB, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
