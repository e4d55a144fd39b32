from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Optional, List


class UserRole(str, Enum):
    """Closed set of account roles"""
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


def _parse_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class UserPreferences:
    """Shopping and display preferences"""
    favorite_categories: List[str] = field(default_factory=list)
    currency: str = "INR"
    notifications: bool = True
    theme: str = "light"  # light, dark
    language: str = "en"

    def to_dict(self):
        return {
            "favorite_categories": list(self.favorite_categories),
            "currency": self.currency,
            "notifications": self.notifications,
            "theme": self.theme,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: dict):
        data = dict(data)
        data["favorite_categories"] = list(data.get("favorite_categories") or [])
        return cls(**data)


@dataclass
class UserProfile:
    """Optional personal details"""
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    interests: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "phone": self.phone,
            "address": self.address,
            "date_of_birth": self.date_of_birth,
            "gender": self.gender,
            "interests": list(self.interests),
        }

    @classmethod
    def from_dict(cls, data: dict):
        data = dict(data)
        data["interests"] = list(data.get("interests") or [])
        return cls(**data)


@dataclass
class UserStats:
    """Order and loyalty counters"""
    total_orders: int = 0
    total_spent: float = 0.0
    last_order_date: Optional[datetime] = None
    loyalty_points: int = 0

    def to_dict(self):
        return {
            "total_orders": self.total_orders,
            "total_spent": self.total_spent,
            "last_order_date": self.last_order_date.isoformat() if self.last_order_date else None,
            "loyalty_points": self.loyalty_points,
        }

    @classmethod
    def from_dict(cls, data: dict):
        data = dict(data)
        data["last_order_date"] = _parse_datetime(data.get("last_order_date"))
        return cls(**data)


@dataclass
class User:
    """User record as returned to callers (never carries the password)"""
    id: str = ""
    email: str = ""
    name: str = ""
    avatar: Optional[str] = None
    created_at: datetime = None
    last_login: Optional[datetime] = None
    is_active: bool = True
    role: UserRole = UserRole.USER
    preferences: Optional[UserPreferences] = None
    profile: Optional[UserProfile] = None
    stats: Optional[UserStats] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.now()
        self.role = UserRole(self.role)

    def to_dict(self):
        """Convert to a JSON-ready dictionary"""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar": self.avatar,
            "created_at": self.created_at.isoformat(),
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "is_active": self.is_active,
            "role": self.role.value,
            "preferences": self.preferences.to_dict() if self.preferences else None,
            "profile": self.profile.to_dict() if self.profile else None,
            "stats": self.stats.to_dict() if self.stats else None,
        }

    @classmethod
    def from_dict(cls, data: dict):
        """Create a record from its stored dictionary form"""
        data = dict(data)
        data["created_at"] = _parse_datetime(data.get("created_at"))
        data["last_login"] = _parse_datetime(data.get("last_login"))
        if data.get("preferences") is not None:
            data["preferences"] = UserPreferences.from_dict(data["preferences"])
        if data.get("profile") is not None:
            data["profile"] = UserProfile.from_dict(data["profile"])
        if data.get("stats") is not None:
            data["stats"] = UserStats.from_dict(data["stats"])
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class UserRecord(User):
    """Full stored record, including the opaque password"""
    password: str = ""

    def to_dict(self):
        data = super().to_dict()
        data["password"] = self.password
        return data

    def to_user(self) -> User:
        """Copy of this record without the password"""
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            avatar=self.avatar,
            created_at=self.created_at,
            last_login=self.last_login,
            is_active=self.is_active,
            role=self.role,
            preferences=replace(self.preferences, favorite_categories=list(self.preferences.favorite_categories)) if self.preferences else None,
            profile=replace(self.profile, interests=list(self.profile.interests)) if self.profile else None,
            stats=replace(self.stats) if self.stats else None,
        )

    @property
    def last_activity(self) -> datetime:
        """Most recent sign of life: last login, else creation"""
        return self.last_login or self.created_at
