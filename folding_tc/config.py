"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class DatabaseSettings(BaseModel):
    """Database connection settings"""
    host: str = Field(..., description="Database host")
    port: int = Field(..., description="Database port")
    name: str = Field(..., description="Database name")
    user: str = Field(..., description="Database user")
    password: str = Field(..., description="Database password")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Database settings, DATABASE_URL takes precedence over the individual parts
    DATABASE_URL: Optional[str] = Field(None, description="Full SQLAlchemy database URL")
    DB_HOST: str = Field("localhost", description="Database host")
    DB_PORT: int = Field(5432, description="Database port")
    DB_NAME: str = Field("folding_db", description="Database name")
    DB_USER: str = Field("folding_user", description="Database user")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password")

    # Folding@Home stats API
    STATS_API_URL: str = Field("https://api2.foldingathome.org", description="Root URL of the Folding@Home stats API")
    STATS_REQUEST_TIMEOUT_SECONDS: float = Field(30.0, description="Timeout for a single stats request")
    STATS_REQUEST_ATTEMPTS: int = Field(2, description="Attempts per request when rate limited")
    SECONDS_BETWEEN_STATS_REQUEST_ATTEMPTS: float = Field(20.0, description="Wait after a 'too many requests' response")
    STATS_WORKER_THREADS: int = Field(4, description="Concurrent per-user stats updates")

    # Permitted users per category in a single team
    USERS_IN_AMD_GPU: int = 1
    USERS_IN_NVIDIA_GPU: int = 1
    USERS_IN_WILDCARD: int = 1

    LOG_LEVEL: str = Field("INFO", description="Root log level")

    @property
    def database_settings(self) -> DatabaseSettings:
        """Get database settings as a separate model"""
        return DatabaseSettings(
            host=self.DB_HOST,
            port=self.DB_PORT,
            name=self.DB_NAME,
            user=self.DB_USER,
            password=self.DB_PASSWORD or ""
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

settings = Settings()
