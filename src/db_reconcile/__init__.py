"""db-reconcile: MySQL schema drift detection and repair.

Compares a live database against a versioned schema file, reports each
structural difference, and renders the DDL that brings the database back in
line.

Usage:
    from db_reconcile import DatabaseSchemaComparator, load_schema_file
    from db_reconcile import compare_profile, generate_fix_plan, apply_fixes
    from db_reconcile import load_db_config, DatabaseProfile, DatabaseConfig
"""

__version__ = "0.1.0"

# Adapters
from db_reconcile.adapters.base import DatabaseClient
from db_reconcile.adapters.mysql import AsyncMySQLAdapter

# Config
from db_reconcile.config.loader import load_db_config
from db_reconcile.config.models import DatabaseConfig, DatabaseProfile

# Factory
from db_reconcile.factory import (
    ComparisonResult,
    ProfileNotFoundError,
    compare_profile,
    get_adapter,
    load_current_schema,
    resolve_url,
)

# Schema
from db_reconcile.schema.charset import CharsetCache, DatabaseCharset
from db_reconcile.schema.comparator import DatabaseSchemaComparator
from db_reconcile.schema.differences import SchemaDifference
from db_reconcile.schema.fix import FixPlan, FixResult, apply_fixes, generate_fix_plan
from db_reconcile.schema.introspector import SchemaIntrospector
from db_reconcile.schema.models import ColumnSchema, DatabaseSchema, TableKey, TableSchema
from db_reconcile.schema.parser import load_schema_file, parse_schema_sql

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncMySQLAdapter",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    # Factory
    "get_adapter",
    "load_current_schema",
    "compare_profile",
    "ComparisonResult",
    "ProfileNotFoundError",
    "resolve_url",
    # Schema
    "DatabaseCharset",
    "CharsetCache",
    "ColumnSchema",
    "TableKey",
    "TableSchema",
    "DatabaseSchema",
    "SchemaDifference",
    "DatabaseSchemaComparator",
    "SchemaIntrospector",
    "load_schema_file",
    "parse_schema_sql",
    "generate_fix_plan",
    "apply_fixes",
    "FixPlan",
    "FixResult",
]
