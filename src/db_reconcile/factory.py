"""Profile resolution and high-level reconciliation entry points.

Profiles come from db.toml; the active one is chosen with the
``{env_prefix}DB_PROFILE`` environment variable or passed explicitly.

Usage:
    from db_reconcile.factory import compare_profile, get_adapter

    result = await compare_profile("local", schema_file="schema.sql")
    if result.success:
        for diff in result.differences:
            print(diff.describe())
"""

import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from db_reconcile.adapters.mysql import AsyncMySQLAdapter
from db_reconcile.config.loader import load_db_config
from db_reconcile.config.models import DatabaseConfig, DatabaseProfile
from db_reconcile.schema.charset import CharsetCache
from db_reconcile.schema.comparator import DatabaseSchemaComparator
from db_reconcile.schema.errors import SchemaParseError
from db_reconcile.schema.introspector import SchemaIntrospector
from db_reconcile.schema.models import DatabaseSchema
from db_reconcile.schema.parser import load_schema_file

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


class ComparisonResult(BaseModel):
    """Result of ``compare_profile()``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    profile_name: str | None = None
    # SchemaDifference instances, not validated: their formatter field has no schema
    differences: list[Any] = Field(default_factory=list)
    charsets: CharsetCache | None = None
    error: str | None = None

    @property
    def in_sync(self) -> bool:
        """True when the comparison ran and found nothing."""
        return self.success and not self.differences


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the variable name, e.g. ``"SHOP_"`` reads
            ``SHOP_DB_PROFILE``.

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If the variable is not set
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name> or pass --profile."
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get profile name and configuration.

    Raises:
        ProfileNotFoundError: If no profile configured
        KeyError: If profile not found in db.toml
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    if config is None:
        config = load_db_config()

    if profile_name not in config.profiles:
        raise KeyError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Adapter and Schema Loading
# ============================================================================


async def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> AsyncMySQLAdapter:
    """Create a DDL executor for a profile.

    The caller owns the adapter and must ``await adapter.close()``.

    Raises:
        ProfileNotFoundError: If no profile configured
        KeyError: If profile not found in db.toml
    """
    _, profile = get_active_profile(profile_name, env_prefix, config)
    return AsyncMySQLAdapter(resolve_url(profile))


async def load_current_schema(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> tuple[DatabaseSchema, CharsetCache]:
    """Introspect a profile's database.

    Returns:
        Tuple of (current schema, charset cache of that server)

    Raises:
        ProfileNotFoundError: If no profile configured
        KeyError: If profile not found in db.toml
    """
    name, profile = get_active_profile(profile_name, env_prefix, config)

    async with SchemaIntrospector(resolve_url(profile)) as introspector:
        current = await introspector.introspect()
        charsets = await introspector.get_charset_cache()

    logger.debug(f"Loaded {len(current.tables)} tables from profile {name}")
    return current, charsets


async def compare_profile(
    profile_name: str | None = None,
    schema_file: str | Path | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
) -> ComparisonResult:
    """Compare a profile's live database against a schema file.

    Uses the ``[schema]`` settings of db.toml for the schema file, ignored
    tables and extra-table reporting, and the profile's table prefix.
    Errors are reported in the result, not raised.

    Args:
        profile_name: Profile name from db.toml. If None, uses the
            ``{env_prefix}DB_PROFILE`` env var.
        schema_file: Overrides ``[schema] file``.
        env_prefix: Prefix for environment variable lookup.
        config: Preloaded configuration (default: ``load_db_config()``).

    Example:
        >>> result = await compare_profile("local")
        >>> result.in_sync
        True
    """
    try:
        if config is None:
            config = load_db_config()
        name, profile = get_active_profile(profile_name, env_prefix, config)
    except (ProfileNotFoundError, FileNotFoundError, ValueError) as e:
        return ComparisonResult(success=False, profile_name=profile_name, error=str(e))
    except KeyError as e:
        return ComparisonResult(success=False, profile_name=profile_name, error=e.args[0])

    try:
        current, charsets = await load_current_schema(name, env_prefix, config)
    except Exception as e:
        return ComparisonResult(
            success=False,
            profile_name=name,
            error=f"Failed to connect to database: {e}",
        )

    try:
        target = load_schema_file(
            schema_file or config.schema_file, charsets, profile.table_prefix
        )
    except (FileNotFoundError, SchemaParseError) as e:
        return ComparisonResult(success=False, profile_name=name, error=str(e))

    comparator = DatabaseSchemaComparator(
        ignore_tables=config.ignore_tables,
        table_prefix=profile.table_prefix,
        report_extra_tables=config.report_extra_tables,
        charsets=charsets,
    )
    return ComparisonResult(
        success=True,
        profile_name=name,
        differences=comparator.get_differences(current, target),
        charsets=charsets,
    )
