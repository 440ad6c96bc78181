"""
Application configuration using Pydantic Settings.
Manages all environment variables and settings.
"""
import os
from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment modes."""
    DEV = "DEV"
    PRODUCTION = "PRODUCTION"


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./album_api.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=None, case_sensitive=False)

    # Environment
    environment: Environment = Field(
        default=Environment.DEV,
        description="Application environment: DEV or PRODUCTION"
    )

    # Application
    app_name: str = Field(default="Album API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    @model_validator(mode='after')
    def set_debug_from_environment(self):
        """Set debug mode based on environment if not explicitly set via environment variable."""
        # DEBUG 환경 변수가 명시적으로 설정되지 않은 경우에만 환경 모드에 따라 설정
        if 'DEBUG' not in os.environ:
            self.debug = self.environment == Environment.DEV
        return self

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEV

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    # Database
    database_url: str = Field(default=DEFAULT_DATABASE_URL)

    @field_validator("database_url", mode="before")
    @classmethod
    def coerce_empty_database_url(cls, v: str) -> str:
        if not v or not str(v).strip():
            return DEFAULT_DATABASE_URL
        return v

    # JWT (토큰 발급은 외부 인증 서비스 담당, 여기서는 검증만)
    jwt_secret_key: str = Field(default="jwt-secret-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=30)

    # Discord
    discord_api_url: str = Field(default="https://discord.com/api/v10")
    discord_bot_token: str = Field(default="", description="Bot token used for the Authorization header")
    discord_guild_id: str = Field(default="", description="Guild (server) that hosts album channels")
    discord_parent_channel_id: str = Field(
        default="",
        description="Category channel new album channels are created under",
    )
    discord_worker_id: str = Field(
        default="",
        description="Worker/bot identity that always keeps VIEW_CHANNEL on private albums",
    )
    discord_worker_type: str = Field(
        default="member",
        description="Overwrite target type of discord_worker_id: member or role",
    )
    discord_timeout_seconds: float = Field(default=10.0)

    @field_validator("discord_worker_type", mode="before")
    @classmethod
    def normalize_worker_type(cls, v: object) -> str:
        value = str(v or "member").strip().lower()
        if value not in ("member", "role"):
            raise ValueError("discord_worker_type must be 'member' or 'role'")
        return value

    # Logging / observability
    log_dir: str = Field(default="/var/log/album-api", description="NDJSON log directory")
    node_name: str = Field(default="", description="Node/Pod identifier for Prometheus labels")
    instance_ip: str = Field(default="", description="서버 사설 IP (비우면 hostname 사용)")

    def missing_production_settings(self) -> List[str]:
        """Names of settings that must be set before serving in production."""
        missing = []
        for name in (
            "discord_bot_token",
            "discord_guild_id",
            "discord_parent_channel_id",
            "discord_worker_id",
        ):
            if not getattr(self, name).strip():
                missing.append(name.upper())
        if self.jwt_secret_key == "jwt-secret-change-in-production":
            missing.append("JWT_SECRET_KEY")
        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Using lru_cache to avoid reading the environment on every request.
    """
    return Settings()
