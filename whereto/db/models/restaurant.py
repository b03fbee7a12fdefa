"""Restaurant model."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from whereto.db.base import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    external_id = Column(String(255), nullable=True, unique=True, index=True)  # e.g. Google place id

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
