"""
Configuration management for Prep Ledger.

This module handles:
- Database path and URL configuration
- Environment-specific configuration (development vs. production)
- Logging level and cost conservation tolerance

Environment variables:
    PREP_LEDGER_ENV: 'production' (default) or 'development'
    PREP_LEDGER_DATABASE_URL: Full SQLAlchemy URL, overrides the file path
    PREP_LEDGER_LOG_LEVEL: Logging level name (default INFO)
    PREP_LEDGER_COST_TOLERANCE: Relative tolerance for cost conservation
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import (
    COST_TOLERANCE,
    DATABASE_FILENAME,
)

logger = logging.getLogger(__name__)


class Config:
    """
    Application configuration manager.

    Resolves where the database lives and how the engine logs. Values come
    from the environment at construction time; tests call reset_config()
    to pick up changes.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment

        if environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = self._get_user_data_dir()

        self._database_path = self._base_dir / DATABASE_FILENAME
        self._database_url_override = os.environ.get("PREP_LEDGER_DATABASE_URL")
        self._log_level = os.environ.get("PREP_LEDGER_LOG_LEVEL", "INFO").upper()
        self._cost_tolerance = self._read_float(
            "PREP_LEDGER_COST_TOLERANCE", COST_TOLERANCE
        )

    @staticmethod
    def _read_float(name: str, default: float) -> float:
        raw = os.environ.get(name)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {name}={raw!r}; using {default}")
            return default

    def _get_project_data_dir(self) -> Path:
        """
        Get the project's data directory for development.

        Returns:
            Path to project data/ directory
        """
        project_root = Path(__file__).parent.parent.parent.parent
        return project_root / "data"

    def _get_user_data_dir(self) -> Path:
        """
        Get the per-user data directory for production.

        Returns:
            Path to ~/.prep_ledger
        """
        return Path.home() / ".prep_ledger"

    def ensure_directories(self) -> None:
        """Create the database directory if a file database is used."""
        if self._database_url_override is None:
            self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Full path to the database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        Returns:
            PREP_LEDGER_DATABASE_URL if set, otherwise a SQLite file URL
        """
        if self._database_url_override:
            return self._database_url_override
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def log_level(self) -> int:
        """Numeric logging level (falls back to INFO for unknown names)."""
        level = logging.getLevelName(self._log_level)
        return level if isinstance(level, int) else logging.INFO

    @property
    def cost_tolerance(self) -> float:
        """Relative tolerance used when checking cost conservation."""
        return self._cost_tolerance

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(environment='{self.environment}', database_url='{self.database_url}')"


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument; this prevents switching databases
    mid-session.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    PREP_LEDGER_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get("PREP_LEDGER_ENV", "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton to prevent database switching."
        )

    return _config_instance


def reset_config() -> None:
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None
