"""RummyQ host configuration"""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# === Path Configuration ===
RUMMYQ_DIR = Path(__file__).parent.parent
BACKEND_DIR = RUMMYQ_DIR.parent
DATA_DIR = BACKEND_DIR / "data"


class SyncMode(str, Enum):
    CONNECTED = "connected"
    LOCAL_ONLY = "local"


@dataclass(frozen=True)
class EngineConfig:
    """Configuration threaded through the sync engine's constructors."""

    mode: SyncMode = SyncMode.CONNECTED
    table_size: int = 4
    avatar_seed_range: int = 1000

    @property
    def is_local(self) -> bool:
        return self.mode is SyncMode.LOCAL_ONLY


class Settings(BaseSettings):
    """Host settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=RUMMYQ_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (empty: remote store not configured, local-only only)
    database_url: str = Field(default="", description="PostgreSQL database URL")
    database_ssl: str = Field(default="require", description="asyncpg ssl mode, empty to disable")
    auto_migrate: bool = Field(default=False, description="Apply schema migrations on startup")

    # Sync engine
    mode: SyncMode = Field(default=SyncMode.CONNECTED, description="connected or local")
    data_dir: Path = Field(default=DATA_DIR, description="Local-only snapshot directory")
    session_timeout: float = Field(
        default=3.0, gt=0, description="Seconds to wait for the initial connection check"
    )
    table_size: int = Field(default=4, ge=1, le=4, description="Seats per table")
    avatar_seed_range: int = Field(default=1000, ge=1, description="Avatar seeds drawn from [0, N)")

    # OpenRouter AI (Rummy Sage)
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")
    openrouter_model: str = Field(
        default="meta-llama/llama-3.3-70b-instruct:free", description="OpenRouter model"
    )

    # Server
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    frontend_url: str = Field(default="http://localhost:3000", description="Frontend URL for CORS")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL starts with postgresql:// when set"""
        v = v.strip()
        if v and not v.startswith(("postgresql://", "postgres://")):
            raise ValueError("DATABASE_URL must start with 'postgresql://'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @property
    def is_remote_configured(self) -> bool:
        return bool(self.database_url)

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def cors_origins(self) -> list[str]:
        return [self.frontend_url]

    def engine_config(self, mode: SyncMode | None = None) -> EngineConfig:
        return EngineConfig(
            mode=mode or self.mode,
            table_size=self.table_size,
            avatar_seed_range=self.avatar_seed_range,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
