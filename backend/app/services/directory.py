"""
Directory Service - one lookup across both account stores.

Staff (moderators/admins) and pilgrims live in separate tables. When a call
names a counterpart we don't know which one it is, so `lookup` tries the staff
store first and falls back to the pilgrim store. Call sites never branch on
store type.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select

from app.config.constants import ROLE_PILGRIM
from app.models import database
from app.models.database import utcnow
from app.models.pilgrim import Pilgrim
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryEntry:
    user_id: str
    display_name: str
    role: str
    push_token: Optional[str] = None

    @property
    def is_pilgrim(self) -> bool:
        return self.role == ROLE_PILGRIM


class DirectoryService:
    """Read identities and write presence flags on the external account stores."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or database.AsyncSessionLocal

    async def lookup(self, user_id: str) -> Optional[DirectoryEntry]:
        """Resolve a user id to display info, or None if neither store has it."""
        if not user_id:
            return None

        async with self._session_factory() as db:
            result = await db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            if user:
                return DirectoryEntry(user.id, user.full_name, user.role, user.push_token)

            result = await db.execute(select(Pilgrim).where(Pilgrim.id == user_id))
            pilgrim = result.scalar_one_or_none()
            if pilgrim:
                return DirectoryEntry(pilgrim.id, pilgrim.full_name, pilgrim.role, pilgrim.push_token)

        logger.debug(f"[Directory] No account found for {user_id}")
        return None

    async def set_presence(self, user_id: str, role: str, is_online: bool) -> bool:
        """
        Write is_online + last_active_at on the store selected by role.

        Returns:
            True if an account row was updated.
        """
        model = Pilgrim if role == ROLE_PILGRIM else User

        async with self._session_factory() as db:
            result = await db.execute(select(model).where(model.id == user_id))
            account = result.scalar_one_or_none()
            if not account:
                logger.warning(f"[Directory] Presence update skipped, {model.__tablename__} has no {user_id}")
                return False

            account.is_online = is_online
            account.last_active_at = utcnow()
            await db.commit()

        return True


# Singleton instance
directory_service = DirectoryService()
