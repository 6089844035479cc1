"""
Configuration - environment-driven settings for the scheduling core.

Settings are read from the process environment (and a local .env file when
present). Nothing here writes settings back; persisting user preferences is
the UI's concern.

Environment variables:
    DATABASE_URL            SQLAlchemy URL (default: sqlite:///earbs.db)
    TEST_MODE               "true" swaps the database name for its test twin
    EARBS_SESSION_SIZE      Cards per review session (default: 20)
    EARBS_TARGET_RETENTION  Desired recall probability at due time (default: 0.9)
    EARBS_LOG_LEVEL         Logging level name (default: INFO)
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from earbs.fsrs.constants import DEFAULT_SESSION_SIZE, R_TARGET

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///earbs.db"
PROD_DB_NAME = "earbs"
TEST_DB_NAME = "test_earbs"


class Settings(BaseModel):
    """Validated runtime settings."""
    database_url: str = DEFAULT_DATABASE_URL
    session_size: int = Field(DEFAULT_SESSION_SIZE, ge=1)
    target_retention: float = Field(R_TARGET, gt=0.0, lt=1.0)
    log_level: str = "INFO"


def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def get_database_url() -> str:
    """
    Get the database URL from environment variables.

    In test mode the production database name is replaced with the test
    database name, e.g. sqlite:///earbs.db -> sqlite:///test_earbs.db.
    """
    url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if is_test_mode():
        return url.replace(PROD_DB_NAME, TEST_DB_NAME, 1)
    return url


def get_settings() -> Settings:
    """
    Build Settings from the environment.

    Raises:
        pydantic.ValidationError: if a value is malformed or out of range
    """
    return Settings(
        database_url=get_database_url(),
        session_size=os.getenv("EARBS_SESSION_SIZE", DEFAULT_SESSION_SIZE),
        target_retention=os.getenv("EARBS_TARGET_RETENTION", R_TARGET),
        log_level=os.getenv("EARBS_LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str | int | None = None) -> None:
    """
    Configure root logging for applications embedding the core.

    The level defaults to Settings.log_level (EARBS_LOG_LEVEL).
    """
    if level is None:
        level = get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
