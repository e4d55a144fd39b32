from .user import User, UserRecord, UserRole, UserPreferences, UserProfile, UserStats

__all__ = [
    "User",
    "UserRecord",
    "UserRole",
    "UserPreferences",
    "UserProfile",
    "UserStats",
]
