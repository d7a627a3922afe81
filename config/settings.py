from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Load environment variables from a .env file if present.
load_dotenv()

CONFIG_PATH = "config/agent_config.json"


class OdbcConstants:
    """Default values used across the ODBC agent."""
    APP_NAME = "TraySQL"
    CONNECTION_TIMEOUT = 30
    SQL_ANYWHERE_DEFAULT_PORT = 2638
    SQL_PREVIEW_LENGTH = 100
    RESULT_SAMPLE_SIZE = 3
    PROBE_QUERY = "SELECT 1 AS test"
    FALLBACK_DRIVERS = (
        "SQL Anywhere 17",
        "SQL Server",
        "MySQL ODBC Driver",
        "PostgreSQL ODBC Driver",
        "Oracle ODBC Driver",
        "Contabil",
        "BETHA",
        "Sybase ASE ODBC Driver",
        "IBM DB2 ODBC Driver",
        "Microsoft Access Driver (*.mdb, *.accdb)",
        "SQLite3 ODBC Driver",
    )


def default_store_path() -> str:
    return str(Path.home() / ".traysql" / "local.db")


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Local profile store
    profile_db_path: str = Field(default_factory=default_store_path)

    # Driver behaviour
    app_name: str = OdbcConstants.APP_NAME
    connection_timeout: int = Field(default=OdbcConstants.CONNECTION_TIMEOUT)
    adapt_limit_clause: bool = True

    # Logging
    log_level: str = "INFO"
    sql_preview_length: int = Field(default=OdbcConstants.SQL_PREVIEW_LENGTH)
    result_sample_size: int = Field(default=OdbcConstants.RESULT_SAMPLE_SIZE)

    @property
    def profile_db_url(self) -> str:
        """SQLAlchemy URL for the local profile store."""
        return f"sqlite:///{self.profile_db_path}"


def load_config_from_file(config_path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from JSON file."""
    path = Path(config_path)
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading config file {path}: {e}")
        return {}


def save_config_to_file(config: Dict[str, Any], config_path: str = CONFIG_PATH) -> None:
    """Save configuration to JSON file."""
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    logger.info(f"Configuration saved to {path}")


def get_settings(config_path: Optional[str] = None) -> Settings:
    """Get settings loaded from config file, environment and ``.env``."""
    config_data = load_config_from_file(config_path or CONFIG_PATH)
    return Settings(**config_data)


def save_settings(settings_obj: Settings, config_path: Optional[str] = None) -> None:
    """Save settings to config file."""
    # Convert settings to dict, excluding None values
    config_data = {
        name: value
        for name, value in settings_obj.model_dump().items()
        if value is not None
    }
    save_config_to_file(config_data, config_path or CONFIG_PATH)


settings = get_settings()
