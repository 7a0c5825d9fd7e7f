"""Database repositories for CRUD operations."""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy import select, and_, or_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from qaptain.models.database import SavedScenario

logger = logging.getLogger(__name__)


class SavedScenarioRepository:
    """Repository for SavedScenario operations."""

    @staticmethod
    async def get_all(db: AsyncSession) -> List[SavedScenario]:
        """All saved scenarios, newest first."""
        result = await db.execute(
            select(SavedScenario).order_by(desc(SavedScenario.created_at), desc(SavedScenario.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_by_url(db: AsyncSession, url: str) -> List[SavedScenario]:
        """Saved scenarios recorded for one URL, newest first."""
        result = await db.execute(
            select(SavedScenario)
            .where(SavedScenario.url == url)
            .order_by(desc(SavedScenario.created_at), desc(SavedScenario.id))
        )
        return list(result.scalars().all())

    @staticmethod
    async def get(db: AsyncSession, scenario_id: int) -> Optional[SavedScenario]:
        result = await db.execute(select(SavedScenario).where(SavedScenario.id == scenario_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def find_duplicate(
        db: AsyncSession,
        url: Optional[str],
        title: str,
        user_story: str
    ) -> Optional[SavedScenario]:
        """Existing scenario with the same (url, title) or the same (url, story)."""
        url_clause = SavedScenario.url.is_(None) if url is None else SavedScenario.url == url
        result = await db.execute(
            select(SavedScenario)
            .where(and_(
                url_clause,
                or_(SavedScenario.title == title, SavedScenario.user_story == user_story)
            ))
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        title: str,
        user_story: str,
        steps: List[str],
        url: Optional[str] = None
    ) -> Optional[SavedScenario]:
        """
        Create a saved scenario.

        Returns:
            The new row, or None when an equivalent scenario already exists
        """
        existing = await SavedScenarioRepository.find_duplicate(db, url, title, user_story)
        if existing:
            logger.info(f"Not saving scenario '{title}', it already exists as #{existing.id}")
            return None

        scenario = SavedScenario(
            url=url,
            title=title,
            user_story=user_story,
            steps=list(steps),
            created_at=datetime.utcnow()
        )
        db.add(scenario)
        await db.commit()
        await db.refresh(scenario)
        logger.info(f"Created saved scenario #{scenario.id}: {title}")
        return scenario

    @staticmethod
    async def update(
        db: AsyncSession,
        scenario_id: int,
        steps: List[str],
        title: Optional[str] = None,
        user_story: Optional[str] = None
    ) -> Optional[SavedScenario]:
        """Update steps (and optionally title/story); None when the id is unknown."""
        scenario = await SavedScenarioRepository.get(db, scenario_id)
        if not scenario:
            return None

        scenario.steps = list(steps)
        if title is not None:
            scenario.title = title
        if user_story is not None:
            scenario.user_story = user_story
        scenario.updated_at = datetime.utcnow()

        await db.commit()
        await db.refresh(scenario)
        logger.info(f"Updated saved scenario #{scenario_id}")
        return scenario
