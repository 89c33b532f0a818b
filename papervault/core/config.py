# papervault/core/config.py

"""
Global configuration module.

Defines every setting the service needs (database connection, admin secret,
blob backend, classifier strategy, upload limits, log level) and loads them
with Pydantic Settings from environment variables and an optional `.env`
file at the project root.

Imported by:
    - `papervault.main`: project name, API prefix, blob backend for static mounts.
    - `papervault.core.db`: database URL, pool sizes, blob and classifier options.
    - `papervault.api.v1.dependencies`: admin key and upload limits.
    - `tests/*`: tests build their own `Settings` instances and override fields.
"""

import os
from pathlib import Path
from typing import Optional, Literal

from loguru import logger

from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict


IS_PYTEST = os.getenv("PYTEST_RUNNING") == "1"

# --- Locate the .env file relative to this file ---
# config.py -> core/ -> papervault/ -> project root
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
dotenv_path = os.path.join(project_root, ".env")
logger.debug(f"Calculated .env path for Pydantic Settings: {dotenv_path}")

MEGABYTE = 1024 * 1024


class Settings(BaseSettings):
    """
    Application settings.

    Field names are the attribute names used in code; `alias` is the
    environment variable that feeds them.
    """

    model_config = SettingsConfigDict(
        env_file=dotenv_path if os.path.exists(dotenv_path) else None,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- Application ---
    project_name: str = Field(default="PaperVault", alias="PROJECT_NAME")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # --- Record store (PostgreSQL) ---
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pg_pool_min_size: int = Field(default=1, alias="PG_POOL_MIN_SIZE")
    pg_pool_max_size: int = Field(default=10, alias="PG_POOL_MAX_SIZE")

    # --- Moderation ---
    admin_key: Optional[str] = Field(default=None, alias="ADMIN_KEY")
    max_upload_bytes: int = Field(default=20 * MEGABYTE, alias="MAX_UPLOAD_BYTES")

    # --- Blob store ---
    blob_backend: Literal["local", "supabase"] = Field(
        default="local", alias="BLOB_BACKEND"
    )
    local_upload_dir: str = Field(
        default=str(Path(project_root) / "uploads"), alias="LOCAL_UPLOAD_DIR"
    )
    local_upload_url_prefix: str = Field(
        default="/uploads", alias="LOCAL_UPLOAD_URL_PREFIX"
    )
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: Optional[str] = Field(
        default=None, alias="SUPABASE_SERVICE_KEY"
    )
    supabase_bucket: str = Field(default="papers", alias="SUPABASE_BUCKET")

    # --- Content classifier ---
    classifier_strategy: Literal["keyword", "openai", "none"] = Field(
        default="keyword", alias="CLASSIFIER_STRATEGY"
    )
    classifier_text_limit: int = Field(default=1500, alias="CLASSIFIER_TEXT_LIMIT")
    classifier_min_keyword_matches: int = Field(
        default=2, alias="CLASSIFIER_MIN_KEYWORD_MATCHES"
    )
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_timeout_seconds: float = Field(default=15.0, alias="OPENAI_TIMEOUT_SECONDS")

    # --- Test configuration ---
    test_database_url: Optional[str] = Field(default=None, alias="TEST_DATABASE_URL")

    @field_validator(
        "database_url",
        "test_database_url",
        "admin_key",
        "supabase_url",
        "supabase_service_key",
        "openai_api_key",
        "openai_base_url",
        mode="before",
    )
    @classmethod
    def check_not_empty(
        cls, value: Optional[str], info: ValidationInfo
    ) -> Optional[str]:
        """
        Treats a variable set to an empty string (e.g. `DATABASE_URL=""`) as unset.
        """
        if value == "":
            logger.warning(
                f"Configuration field '{info.field_name}' was set to an empty string. "
                f"Treating as None (not set)."
            )
            return None
        return value

    @field_validator("local_upload_url_prefix", mode="after")
    @classmethod
    def normalize_url_prefix(cls, value: str) -> str:
        """Ensures the prefix starts with '/' and has no trailing '/'."""
        value = "/" + value.strip("/")
        return value


# --- Create the global settings instance ---
settings = Settings()
logger.info("Settings loaded successfully.")
logger.debug(f"Project Name: {settings.project_name}")
logger.debug(f"Environment: {settings.environment}")
logger.debug(f"Blob backend: {settings.blob_backend}")
logger.debug(f"Classifier strategy: {settings.classifier_strategy}")

if IS_PYTEST and settings.test_database_url:
    logger.info("Running in pytest environment with TEST_DATABASE_URL set.")

if not settings.admin_key:
    logger.warning(
        "ADMIN_KEY is not set in environment variables or .env file. "
        "All moderation endpoints will reject requests."
    )
