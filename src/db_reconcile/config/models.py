"""Pydantic models for reconciler configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    table_prefix: str = ""


class DatabaseConfig(BaseModel):
    """Complete reconciler configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    schema_file: str = "schema.sql"
    ignore_tables: list[str] = Field(default_factory=list)  # Without prefix
    report_extra_tables: bool = True
