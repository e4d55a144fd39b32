from .user_store import UserStore
from .user_indexes import UserIndexes, rebuild_indexes, normalize_email, tokenize_name
from .backup_scheduler import BackupScheduler
from .session_cache import CurrentUserCache
from .auth_service import AccountService

__all__ = [
    "UserStore",
    "UserIndexes",
    "rebuild_indexes",
    "normalize_email",
    "tokenize_name",
    "BackupScheduler",
    "CurrentUserCache",
    "AccountService"
]
