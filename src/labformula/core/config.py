"""
Engine configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LABFORMULA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON formatted logs")

    # ==========================================================================
    # Table Layout
    # ==========================================================================
    variable_column: str = Field(
        default="Variable",
        description="Column holding the variable name of each row",
    )
    row_id_column: str = Field(default="id", description="Column holding the row id")
    row_id_prefix: str = Field(
        default="row-",
        description="Prefix for synthesized row ids when the table has no id column",
    )
    metadata_columns: list[str] = Field(
        default=["id", "Variable", "Data Source", "Method", "Unit", "LOQ"],
        description="Columns that never hold sampled values",
    )

    @field_validator("metadata_columns", mode="before")
    @classmethod
    def parse_metadata_columns(cls, v: Any) -> list[str]:
        """Parse metadata columns from comma-separated string."""
        if isinstance(v, str):
            return [col.strip() for col in v.split(",") if col.strip()]
        return v

    # ==========================================================================
    # Evaluation
    # ==========================================================================
    equality_epsilon: float = Field(
        default=1e-10,
        ge=0,
        description="Tolerance used by == and != comparisons",
    )
    highlight_scope: Literal["column", "referenced"] = Field(
        default="column",
        description="Which rows of a matching column get highlighted",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
