"""Schema snapshots, comparison, and drift repair.

Provides the schema model (``DatabaseSchema``, ``TableSchema``,
``ColumnSchema``, ``TableKey``, ``DatabaseCharset``), the two snapshot
sources (``load_schema_file`` for the target, ``SchemaIntrospector`` for
the live database), the comparison (``DatabaseSchemaComparator``) and drift
repair (``generate_fix_plan``, ``apply_fixes``).

Usage:
    from db_reconcile.schema import DatabaseSchemaComparator, load_schema_file
    from db_reconcile.schema import SchemaIntrospector
    from db_reconcile.schema import generate_fix_plan, apply_fixes
"""

from db_reconcile.schema.charset import CharsetCache, DatabaseCharset
from db_reconcile.schema.comparator import DatabaseSchemaComparator
from db_reconcile.schema.differences import (
    AlterTableDifference,
    ColumnDifference,
    DifferentAutoIncrement,
    DifferentColumnCharset,
    DifferentDataType,
    DifferentDefaultValue,
    DifferentKey,
    DifferentNullable,
    DifferentTableCharset,
    ExtraColumn,
    ExtraKey,
    ExtraTable,
    MigrationStage,
    MissingColumn,
    MissingKey,
    MissingTable,
    SchemaDifference,
)
from db_reconcile.schema.errors import (
    ColumnNotFoundError,
    DuplicateNameError,
    KeyNotFoundError,
    SchemaError,
    SchemaNotFoundError,
    SchemaParseError,
    TableNotFoundError,
)
from db_reconcile.schema.fix import (
    FixPlan,
    FixResult,
    FixStatement,
    apply_fixes,
    generate_fix_plan,
)
from db_reconcile.schema.introspector import SchemaIntrospector
from db_reconcile.schema.messages import MessageFormatter, default_formatter
from db_reconcile.schema.models import (
    DEFAULT_CURRENT_TIMESTAMP,
    DEFAULT_NULL,
    NO_DEFAULT,
    ColumnDefault,
    ColumnSchema,
    DatabaseSchema,
    DefaultCurrentTimestamp,
    DefaultIsNull,
    DefaultValue,
    KeyType,
    NoDefault,
    TableKey,
    TableSchema,
)
from db_reconcile.schema.parser import load_schema_file, parse_schema_sql

__all__ = [
    # Model
    "DatabaseCharset",
    "CharsetCache",
    "ColumnDefault",
    "NoDefault",
    "DefaultIsNull",
    "DefaultValue",
    "DefaultCurrentTimestamp",
    "NO_DEFAULT",
    "DEFAULT_NULL",
    "DEFAULT_CURRENT_TIMESTAMP",
    "ColumnSchema",
    "KeyType",
    "TableKey",
    "TableSchema",
    "DatabaseSchema",
    # Errors
    "SchemaError",
    "SchemaNotFoundError",
    "TableNotFoundError",
    "ColumnNotFoundError",
    "KeyNotFoundError",
    "DuplicateNameError",
    "SchemaParseError",
    # Sources
    "load_schema_file",
    "parse_schema_sql",
    "SchemaIntrospector",
    # Comparison
    "DatabaseSchemaComparator",
    "MessageFormatter",
    "default_formatter",
    "MigrationStage",
    "SchemaDifference",
    "AlterTableDifference",
    "MissingTable",
    "ExtraTable",
    "DifferentTableCharset",
    "MissingColumn",
    "ExtraColumn",
    "ColumnDifference",
    "DifferentDataType",
    "DifferentNullable",
    "DifferentAutoIncrement",
    "DifferentDefaultValue",
    "DifferentColumnCharset",
    "MissingKey",
    "ExtraKey",
    "DifferentKey",
    # Repair
    "generate_fix_plan",
    "apply_fixes",
    "FixPlan",
    "FixStatement",
    "FixResult",
]
