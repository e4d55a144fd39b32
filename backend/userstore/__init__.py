"""
Indexed, persisted user record store.
"""

from userstore.core.config import Settings, settings
from userstore.core.exceptions import UserStoreException, CapacityExceededError, EmailConflictError
from userstore.db.kv_store import KeyValueStore, InMemoryKeyValueStore, SQLiteKeyValueStore, create_kv_store
from userstore.models.user import User, UserRecord, UserRole
from userstore.schemas.user import UserUpdate, UserStatsResponse, ImportResult
from userstore.services.user_store import UserStore
from userstore.services.auth_service import AccountService

__version__ = settings.VERSION

__all__ = [
    "Settings",
    "settings",
    "UserStoreException",
    "CapacityExceededError",
    "EmailConflictError",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "create_kv_store",
    "User",
    "UserRecord",
    "UserRole",
    "UserUpdate",
    "UserStatsResponse",
    "ImportResult",
    "UserStore",
    "AccountService",
]
