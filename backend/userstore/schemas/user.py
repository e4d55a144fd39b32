"""
User-related schemas: partial updates, aggregate statistics and import results.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator

from userstore.models.user import UserRole


class PreferencesUpdate(BaseModel):
    """Partial update of user preferences."""
    model_config = ConfigDict(extra="forbid")

    favorite_categories: Optional[List[str]] = None
    currency: Optional[str] = None
    notifications: Optional[bool] = None
    theme: Optional[str] = Field(None, pattern="^(light|dark)$")
    language: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Partial update of the personal profile."""
    model_config = ConfigDict(extra="forbid")

    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    interests: Optional[List[str]] = None


class StatsUpdate(BaseModel):
    """Partial update of order and loyalty counters."""
    model_config = ConfigDict(extra="forbid")

    total_orders: Optional[int] = Field(None, ge=0)
    total_spent: Optional[float] = Field(None, ge=0)
    last_order_date: Optional[datetime] = None
    loyalty_points: Optional[int] = Field(None, ge=0)


class UserUpdate(BaseModel):
    """Fields a caller may change on an existing user.

    Identifier, creation time and password are not part of this model, so a
    payload carrying them is rejected.
    """
    model_config = ConfigDict(extra="forbid")

    email: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    preferences: Optional[PreferencesUpdate] = None
    profile: Optional[ProfileUpdate] = None
    stats: Optional[StatsUpdate] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty or whitespace only")
        return v.strip() if v is not None else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Email cannot be empty")
        return v


class UserStatsResponse(BaseModel):
    """Aggregate view over all stored users."""
    total_users: int
    active_users: int
    inactive_users: int
    admin_users: int
    moderator_users: int
    regular_users: int
    new_users_this_week: int
    new_users_this_month: int
    users_with_orders: int
    average_order_value: float
    total_revenue: float
    storage_used: float = Field(..., description="Approximate size of the user table in MB")
    max_capacity: int
    capacity_used: int = Field(..., description="Percent of capacity in use")


class ImportResult(BaseModel):
    """Outcome of a CSV import."""
    imported: int = 0
    errors: List[str] = Field(default_factory=list)
