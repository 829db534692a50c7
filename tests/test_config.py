"""
Tests for database connection configuration.
"""

import pytest

from folding_tc.config import Settings
from folding_tc.db_config import DatabaseCredentials, DatabaseManager


class TestDatabaseManager:
    """Tests for DatabaseManager.connection_string."""

    def test_database_url_preferred(self):
        settings = Settings(DATABASE_URL="sqlite:///folding.db", DB_PASSWORD="ignored")
        assert DatabaseManager.connection_string(settings) == "sqlite:///folding.db"

    def test_built_from_parts(self):
        settings = Settings(DATABASE_URL=None, DB_HOST="db", DB_PORT=5433, DB_NAME="tc", DB_USER="folder", DB_PASSWORD="p@ss")
        assert DatabaseManager.connection_string(settings) == "postgresql://folder:p%40ss@db:5433/tc"

    def test_password_required(self):
        with pytest.raises(ValueError):
            DatabaseManager.connection_string(Settings(DATABASE_URL=None, DB_PASSWORD=None))

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError):
            DatabaseManager.connection_string(Settings(DATABASE_URL="mysql://localhost/tc"))


class TestDatabaseCredentials:
    """Tests for DatabaseCredentials.validate_url."""

    def test_driver_suffix_allowed(self):
        assert DatabaseCredentials.validate_url("postgresql+psycopg2://user@host/db")

    def test_unknown_scheme(self):
        assert not DatabaseCredentials.validate_url("redis://localhost")
