from .user import (
    UserUpdate,
    PreferencesUpdate,
    ProfileUpdate,
    StatsUpdate,
    UserStatsResponse,
    ImportResult,
)

__all__ = [
    "UserUpdate",
    "PreferencesUpdate",
    "ProfileUpdate",
    "StatsUpdate",
    "UserStatsResponse",
    "ImportResult",
]
