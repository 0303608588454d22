"""
Base service class for the Guild Roster bot.

Provides the per-guild document store scope and async database session
management shared by the service layer.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from roster_bot.config import TrackerSettings
from roster_bot.database.document_store import SqlDocumentStore

logger = logging.getLogger(__name__)

class BaseService:
    """Base class for services with async database session management."""

    def __init__(self, database, settings: TrackerSettings):
        """
        Initialize base service.

        Args:
            database: Initialized Database instance
            settings: Tracker settings shared with the operations layer
        """
        self.db = database
        self.settings = settings

    def store_for(self, owner_id) -> SqlDocumentStore:
        """Fresh document store (with an empty write queue) for one guild's roster."""
        return SqlDocumentStore(self.db, self.settings.app_id, str(owner_id))

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for async database operations."""
        session = self.db.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
