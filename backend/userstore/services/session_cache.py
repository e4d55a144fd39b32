import json
import logging
from typing import Optional

from userstore.db.kv_store import KeyValueStore
from userstore.models.user import User, UserRecord

logger = logging.getLogger(__name__)


class CurrentUserCache:
    """Single cached "current user" kept apart from the user table

    Clearing the cache never touches the underlying user record.
    """

    def __init__(self, kv: KeyValueStore, key: str):
        self.kv = kv
        self.key = key

    async def save(self, user: User):
        """Cache user as the current identity, always without the password"""
        if isinstance(user, UserRecord):
            user = user.to_user()
        try:
            await self.kv.set(self.key, json.dumps(user.to_dict()))
        except Exception as e:
            logger.error(f"Error saving current user: {e}")

    async def get(self) -> Optional[User]:
        """Return the cached identity, dropping the entry if it is unreadable"""
        try:
            stored = await self.kv.get(self.key)
            return User.from_dict(json.loads(stored)) if stored else None
        except Exception as e:
            logger.error(f"Error loading current user: {e}")
            await self.clear()
            return None

    async def clear(self):
        """Forget the cached identity"""
        try:
            await self.kv.delete(self.key)
        except Exception as e:
            logger.error(f"Error clearing current user: {e}")
