"""Component checks for the detailed health endpoint."""

import logging
import os

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sourceverifier.config import Settings

logger = logging.getLogger(__name__)


class DataService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings

    async def check_connection(self) -> bool:
        """Round-trip ``SELECT 1``; False on any storage failure."""
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except Exception as exc:
            logger.warning("event=db_check_failed error=%s", exc)
            return False
        return True

    def check_log_dir(self) -> bool:
        """True when the audit log directory is writable."""
        log_dir = self._settings.log_dir
        return log_dir.is_dir() and os.access(log_dir, os.W_OK)
