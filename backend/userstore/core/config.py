from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "GearUp User Store"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Key-value persistence
    KV_BACKEND: str = "sqlite"  # sqlite, memory
    KV_DATABASE_PATH: str = "./data/userstore.db"
    STORAGE_PREFIX: str = "gearupsports"

    # Capacity and retention
    MAX_USERS: int = Field(1000, gt=0)
    BACKUP_INTERVAL_SECONDS: float = 300.0
    BACKUP_RETENTION: int = Field(3, ge=1)
    INACTIVE_RETENTION_DAYS: int = 730

    # Defaults for new accounts
    DEFAULT_CURRENCY: str = "INR"
    DEFAULT_LANGUAGE: str = "en"
    IMPORT_DEFAULT_PASSWORD: str = "imported123"

    # Seeding
    SEED_DEFAULT_USERS: bool = True
    SAMPLE_USER_COUNT: int = 0

    @property
    def users_key(self) -> str:
        return f"{self.STORAGE_PREFIX}_users_db_v2"

    @property
    def indexes_key(self) -> str:
        return f"{self.STORAGE_PREFIX}_db_indexes_v2"

    @property
    def current_user_key(self) -> str:
        return f"{self.STORAGE_PREFIX}_current_user_v2"

    @property
    def backup_prefix(self) -> str:
        return f"{self.STORAGE_PREFIX}_backup_"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
