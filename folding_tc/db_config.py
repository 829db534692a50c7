# folding_tc/db_config.py
"""Database configuration and connection string management"""
from dataclasses import dataclass
from urllib.parse import quote_plus, urlparse

from folding_tc.config import Settings

SUPPORTED_SCHEMES = ('postgresql', 'sqlite')

@dataclass
class DatabaseCredentials:
    """Database credentials container"""
    host: str
    port: int
    name: str
    user: str
    password: str

    def to_connection_string(self) -> str:
        """Generate database connection string with proper escaping"""
        return (
            f"postgresql://{quote_plus(self.user)}:{quote_plus(self.password)}@{self.host}:{self.port}/"
            f"{self.name}"
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> 'DatabaseCredentials':
        """Create credentials from application settings"""
        database = settings.database_settings
        return cls(
            host=database.host,
            port=database.port,
            name=database.name,
            user=database.user,
            password=database.password
        )

    @classmethod
    def validate_url(cls, url: str) -> bool:
        """Validate database URL scheme"""
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        scheme = parsed.scheme.split('+')[0]
        return scheme in SUPPORTED_SCHEMES

class DatabaseManager:
    """Resolves the connection string the application should use"""

    @classmethod
    def connection_string(cls, settings: Settings) -> str:
        """
        Get the database connection string from settings.

        Returns:
            DATABASE_URL if set, otherwise a PostgreSQL URL built from the DB_* settings

        Raises:
            ValueError: If the URL is not supported or no password is configured
        """
        if settings.DATABASE_URL:
            if not DatabaseCredentials.validate_url(settings.DATABASE_URL):
                raise ValueError(f"Unsupported DATABASE_URL scheme: {settings.DATABASE_URL.split(':')[0]}")
            return settings.DATABASE_URL

        if not settings.DB_PASSWORD:
            raise ValueError("DB_PASSWORD setting is required when DATABASE_URL is not set")

        return DatabaseCredentials.from_settings(settings).to_connection_string()
