"""Schema comparison producing an ordered list of differences.

Compares a *current* snapshot (live database) against a *target* snapshot
(static definitions). Pure logic: no I/O, no database connections.

Usage:
    from db_reconcile.schema.comparator import DatabaseSchemaComparator
    from db_reconcile.schema.introspector import SchemaIntrospector
    from db_reconcile.schema.parser import load_schema_file

    async with SchemaIntrospector(database_url) as introspector:
        current = await introspector.introspect()
        charsets = await introspector.get_charset_cache()

    target = load_schema_file("schema.sql", charsets)

    comparator = DatabaseSchemaComparator(
        ignore_tables=["connections"], table_prefix="tb_", charsets=charsets
    )
    for diff in comparator.get_differences(current, target):
        print(diff.describe())
"""

import logging
from collections.abc import Iterable

from db_reconcile.schema.charset import CharsetCache
from db_reconcile.schema.differences import (
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
    MissingColumn,
    MissingKey,
    MissingTable,
    SchemaDifference,
)
from db_reconcile.schema.messages import MessageFormatter, default_formatter
from db_reconcile.schema.models import ColumnSchema, DatabaseSchema, TableKey, TableSchema

logger = logging.getLogger(__name__)


class DatabaseSchemaComparator:
    """Compares two ``DatabaseSchema`` snapshots.

    Output order is part of the contract: re-running on unchanged snapshots
    yields the same list. Target tables are visited in byte-wise name order;
    within a table, column differences come before key differences, and the
    table charset comes last. Extra tables follow all target tables.

    Args:
        ignore_tables: Base table names (without prefix) to leave out of the
            comparison on both sides.
        table_prefix: Deployment table prefix prepended to each ignored name.
        report_extra_tables: Report current tables missing from the target
            as ``ExtraTable``.
        charsets: Default-collation lookup handed to each difference for
            DDL rendering.
        formatter: Message formatter handed to each difference.
    """

    def __init__(
        self,
        ignore_tables: Iterable[str] = (),
        table_prefix: str = "",
        report_extra_tables: bool = True,
        charsets: CharsetCache | None = None,
        formatter: MessageFormatter = default_formatter,
    ) -> None:
        self.ignore_tables: frozenset[str] = frozenset(
            f"{table_prefix}{table}" for table in ignore_tables
        )
        self.report_extra_tables = report_extra_tables
        self.charsets = charsets
        self.formatter = formatter

    def get_differences(
        self, current: DatabaseSchema, target: DatabaseSchema
    ) -> list[SchemaDifference]:
        """Return the differences between ``current`` and ``target``.

        Args:
            current: Snapshot of the live database.
            target: Snapshot of the expected schema.

        Returns:
            Ordered list of ``SchemaDifference``. Empty when the schemas match.
        """
        differences: list[SchemaDifference] = []
        target_tables = self.get_tables(target)

        for table in target_tables:
            if not current.has_table(table.name):
                differences.append(self._make(MissingTable, table))
            else:
                differences.extend(self._compare_table(current.get_table(table.name), table))

        if self.report_extra_tables:
            target_names = {table.name for table in target_tables}
            for table in self.get_tables(current):
                if table.name not in target_names:
                    differences.append(self._make(ExtraTable, table))

        logger.debug(f"Found {len(differences)} schema differences")
        return differences

    def get_tables(self, schema: DatabaseSchema) -> list[TableSchema]:
        """Tables of ``schema`` minus ignored tables, sorted by name."""
        tables = [
            table for table in schema.get_tables() if table.name not in self.ignore_tables
        ]
        # Byte-wise ordering, independent of locale
        return sorted(tables, key=lambda table: table.name.encode("utf-8"))

    def _make(self, cls: type[SchemaDifference], *args: object) -> SchemaDifference:
        return cls(*args, charsets=self.charsets, formatter=self.formatter)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def _compare_table(
        self, current: TableSchema, target: TableSchema
    ) -> list[SchemaDifference]:
        differences = self._compare_columns(current, target)
        differences.extend(self._compare_keys(current, target))
        if target.charset.charset and target.charset != current.charset:
            differences.append(self._make(DifferentTableCharset, target, current))
        return differences

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def _compare_columns(
        self, current: TableSchema, target: TableSchema
    ) -> list[SchemaDifference]:
        differences: list[SchemaDifference] = []

        for column in target.columns:
            if not current.has_column(column.name):
                differences.append(self._make(MissingColumn, target, column))
                continue
            current_column = current.get_column(column.name)
            differences.extend(self._compare_column(target, column, current_column))

        for current_column in current.columns:
            if not target.has_column(current_column.name):
                differences.append(self._make(ExtraColumn, target, current_column))

        return differences

    def _compare_column(
        self, table: TableSchema, column: ColumnSchema, current: ColumnSchema
    ) -> list[SchemaDifference]:
        checks: list[tuple[type[SchemaDifference], bool]] = [
            (DifferentDataType, column.data_type.lower() != current.data_type.lower()),
            (DifferentNullable, column.is_nullable != current.is_nullable),
            (DifferentAutoIncrement, column.auto_increment != current.auto_increment),
            (DifferentDefaultValue, self._default_differs(column, current)),
            (DifferentColumnCharset, self._charset_differs(column, current)),
        ]
        return [self._make(cls, table, column, current) for cls, differs in checks if differs]

    @staticmethod
    def _default_differs(column: ColumnSchema, current: ColumnSchema) -> bool:
        # AUTO_INCREMENT columns take no DEFAULT clause
        if column.auto_increment:
            return False
        return column.effective_default != current.effective_default

    @staticmethod
    def _charset_differs(column: ColumnSchema, current: ColumnSchema) -> bool:
        # Non-textual columns carry no charset on either side
        if column.charset.is_empty and current.charset.is_empty:
            return False
        return column.charset != current.charset

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def _compare_keys(
        self, current: TableSchema, target: TableSchema
    ) -> list[SchemaDifference]:
        differences: list[SchemaDifference] = []
        target_names = set(target.key_names)
        # Current keys with no same-named target key, candidates for renames
        unmatched: list[TableKey] = [key for key in current.keys if key.name not in target_names]

        for key in target.keys:
            if current.has_key(key.name):
                current_key = current.get_key(key.name)
                if not key.is_equivalent(current_key):
                    differences.append(self._make(DifferentKey, target, key, current_key))
                continue

            renamed = next((other for other in unmatched if key.is_equivalent(other)), None)
            if renamed is not None:
                unmatched.remove(renamed)
                differences.append(self._make(DifferentKey, target, key, renamed))
            else:
                differences.append(self._make(MissingKey, target, key))

        for current_key in unmatched:
            differences.append(self._make(ExtraKey, target, current_key))

        return differences
