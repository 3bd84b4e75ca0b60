"""TOML configuration loader for db.toml profiles."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from db_reconcile.config.models import DatabaseConfig, DatabaseProfile


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load reconciler configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ``Path.cwd() / "db.toml"``)

    Returns:
        DatabaseConfig with all profiles and schema settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Create db.toml with at least one [profiles.<name>] section."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        # Parse profiles
        profiles = {}
        for name, profile_data in data.get("profiles", {}).items():
            profiles[name] = DatabaseProfile(**profile_data)

        # Parse schema settings
        schema_settings = data.get("schema", {})

        return DatabaseConfig(
            profiles=profiles,
            schema_file=schema_settings.get("file", "schema.sql"),
            ignore_tables=schema_settings.get("ignore_tables", []),
            report_extra_tables=schema_settings.get("report_extra_tables", True),
        )
    except (ValidationError, TypeError) as e:
        raise ValueError(f"Invalid configuration in {config_path}: {e}") from e
