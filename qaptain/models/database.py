"""Database models for saved-scenario persistence."""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SavedScenario(Base):
    """A reusable scenario a user chose to keep."""
    __tablename__ = "saved_scenarios"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String(2048), nullable=True, index=True)
    title = Column(String(500), nullable=False)
    user_story = Column(Text, nullable=False)

    # Ordered natural-language steps
    steps = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=True)
