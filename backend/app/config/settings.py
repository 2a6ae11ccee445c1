from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # Database
    DB_USER: str = Field("pilgrim_admin")
    DB_PASSWORD: str = Field("PilgrimPass2024")
    DB_NAME: str = Field("pilgrim_realtime")
    DB_HOST: str = Field("postgres")
    DB_PORT: int = Field(5432)
    # Full URL override (e.g. sqlite+aiosqlite:///./dev.db for local runs)
    DATABASE_URL: Optional[str] = Field(None)

    # Redis
    REDIS_HOST: str = Field("redis")
    REDIS_PORT: int = Field(6379)
    REDIS_PASSWORD: str | None = Field(None)
    REDIS_CONNECT_TIMEOUT_SEC: float = Field(2.0)

    # Firebase Cloud Messaging (push disabled when no credentials are configured)
    FIREBASE_CREDENTIALS_PATH: str | None = Field(None)
    FIREBASE_PROJECT_ID: str | None = Field(None)

    # App
    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(5000)
    DEBUG: bool = Field(False)
    LOG_LEVEL: str = Field("INFO")
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])

    # Socket.IO
    SOCKETIO_PATH: str = Field("socket.io")
    SOCKETIO_CORS_ORIGINS: list[str] | str = Field("*")

    # Calls - a ring timeout of 0 leaves ringing calls untouched until call-end
    CALL_RING_TIMEOUT_SEC: int = Field(0)
    CALL_RING_SWEEP_INTERVAL_SEC: int = Field(30)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8"
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()
