"""
Configuration management for Similar References.

Uses Pydantic settings for type-safe configuration with environment variable support.
All settings can be overridden via environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import DisplayMode, MatchMode, SortOrder

DEFAULT_SQLITE_PATH = Path.cwd() / "similar_references.sqlite"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables.
    For nested settings, use double underscore: CORS__ALLOW_ORIGINS="http://localhost:3000"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ==========================================================================
    # Application Metadata
    # ==========================================================================
    app_name: str = "Similar References API"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(default="development", description="development, staging, production")
    log_level: str = Field(default="INFO", description="Root log level for the CLI and API")

    # ==========================================================================
    # Database Configuration
    # ==========================================================================
    database_url: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection string. SQLite is used when unset.",
    )
    database_pool_size: int = Field(default=10, ge=1, le=50)
    sqlite_path: Path = Field(
        default=DEFAULT_SQLITE_PATH,
        description="SQLite database file used when no DATABASE_URL is configured",
    )

    @computed_field
    @property
    def use_postgres(self) -> bool:
        """Whether the PostgreSQL row store is configured."""
        return bool(self.database_url)

    # ==========================================================================
    # Corpus Layout
    # ==========================================================================
    entity_type: str = Field(default="node", description="Entity type that owns the reference fields")
    base_table: str = Field(default="node_field_data", description="Primary entity relation")
    base_id_column: str = Field(default="nid", description="Entity id column on the primary relation")
    catalog_target_types: list[str] = Field(
        default=["node", "user"],
        description="Reference target types unioned when no fields are selected",
    )

    # ==========================================================================
    # Similarity Defaults
    # ==========================================================================
    default_display_mode: DisplayMode = DisplayMode.percentage
    default_percent_suffix: bool = True
    default_sort_order: SortOrder = SortOrder.DESC
    default_match_mode: MatchMode = MatchMode.any
    include_source_default: bool = Field(
        default=False,
        description="Keep the source entity eligible for its own result row",
    )

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    api_docs_url: str = "/docs"

    cors_allow_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins. Set to ['*'] for development.",
    )
    cors_allow_methods: list[str] = ["GET", "HEAD", "OPTIONS"]
    cors_allow_headers: list[str] = ["Accept", "Accept-Encoding", "Content-Type"]
    cors_allow_credentials: bool = False


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
