"""Schema differences: one typed object per structural mismatch.

Each difference keeps references to the target ("expected") entities and,
where relevant, the current ("actual") ones. It can describe itself and
render the DDL statement that makes the current schema match the target.
Nothing here executes SQL.

The family is closed: ``SchemaDifference.to_sql()`` is abstract, so every
variant must produce a statement, and ``stage`` tells the fix planner where
the statement belongs in a migration script.

Usage:
    for diff in comparator.get_differences(current, target):
        print(diff.describe())
        print(diff.to_sql())
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from db_reconcile.schema import messages
from db_reconcile.schema.charset import CharsetCache
from db_reconcile.schema.messages import MessageFormatter, default_formatter
from db_reconcile.schema.models import ColumnSchema, TableKey, TableSchema


class MigrationStage(int, Enum):
    """Position of a statement in a migration script, lowest first."""

    DROP_INDEXES = 1
    DROP_COLUMNS = 2
    DROP_TABLES = 3
    CREATE_TABLES = 4
    ADD_COLUMNS = 5
    MODIFY_COLUMNS = 6
    CREATE_INDEXES = 7
    ALTER_TABLES = 8


@dataclass(frozen=True)
class SchemaDifference(ABC):
    """Base class for all schema differences.

    Attributes:
        table: Table the difference belongs to. For ``ExtraTable`` this is
            the current table; otherwise the target table.
        charsets: Default-collation lookup used when rendering column DDL.
        formatter: Renders description templates.
    """

    stage: ClassVar[MigrationStage]
    destructive: ClassVar[bool] = False

    table: TableSchema
    charsets: CharsetCache | None = field(
        default=None, kw_only=True, repr=False, compare=False
    )
    formatter: MessageFormatter = field(
        default=default_formatter, kw_only=True, repr=False, compare=False
    )

    @property
    def table_name(self) -> str:
        return self.table.name

    @property
    def kind(self) -> str:
        """Variant name, e.g. ``MissingColumn``."""
        return type(self).__name__

    @abstractmethod
    def describe(self) -> str:
        """Human readable explanation of the difference."""

    @abstractmethod
    def to_sql(self) -> str:
        """DDL statement that removes the difference."""

    def _format(self, template: str, *args: object) -> str:
        return self.formatter(template, *args)


@dataclass(frozen=True)
class AlterTableDifference(SchemaDifference):
    """Difference fixed by a single ``ALTER TABLE`` on its table.

    ``alter_clause()`` is exposed separately so the fix planner can combine
    clauses that must run in one statement.
    """

    @abstractmethod
    def alter_clause(self) -> str:
        """The ALTER TABLE specification, without ``ALTER TABLE `t```."""

    def to_sql(self) -> str:
        return f"ALTER TABLE `{self.table.name}` {self.alter_clause()}"


# ============================================================================
# Tables
# ============================================================================


@dataclass(frozen=True)
class MissingTable(SchemaDifference):
    """Target table does not exist in the current schema."""

    stage: ClassVar[MigrationStage] = MigrationStage.CREATE_TABLES

    def describe(self) -> str:
        return self._format(messages.MISSING_TABLE, self.table.name)

    def to_sql(self) -> str:
        return self.table.to_sql(self.charsets)


@dataclass(frozen=True)
class ExtraTable(SchemaDifference):
    """Current table is not part of the target schema."""

    stage: ClassVar[MigrationStage] = MigrationStage.DROP_TABLES
    destructive: ClassVar[bool] = True

    def describe(self) -> str:
        return self._format(messages.EXTRA_TABLE, self.table.name)

    def to_sql(self) -> str:
        return f"DROP TABLE `{self.table.name}`"


@dataclass(frozen=True)
class DifferentTableCharset(AlterTableDifference):
    """Table default character set or collation differs."""

    stage: ClassVar[MigrationStage] = MigrationStage.ALTER_TABLES

    current_table: TableSchema

    def describe(self) -> str:
        return self._format(
            messages.DIFFERENT_TABLE_CHARSET,
            self.table.name,
            self.table.charset.describe(),
            self.current_table.charset.describe(),
        )

    def alter_clause(self) -> str:
        clause = f"DEFAULT CHARSET={self.table.charset.charset}"
        if self.table.charset.collate:
            clause += f" COLLATE={self.table.charset.collate}"
        return clause


# ============================================================================
# Columns
# ============================================================================


@dataclass(frozen=True)
class MissingColumn(AlterTableDifference):
    """Target column does not exist in the current table."""

    stage: ClassVar[MigrationStage] = MigrationStage.ADD_COLUMNS

    column: ColumnSchema

    def describe(self) -> str:
        return self._format(messages.MISSING_COLUMN, self.table.name, self.column.name)

    def alter_clause(self) -> str:
        names = self.table.column_names
        position = names.index(self.column.name) if self.column.name in names else len(names)
        placement = "FIRST" if position == 0 else f"AFTER `{names[position - 1]}`"
        definition = self.column.to_sql(self.table, self.charsets)
        return f"ADD COLUMN {definition} {placement}"


@dataclass(frozen=True)
class ExtraColumn(AlterTableDifference):
    """Current column is not part of the target table."""

    stage: ClassVar[MigrationStage] = MigrationStage.DROP_COLUMNS
    destructive: ClassVar[bool] = True

    column: ColumnSchema

    def describe(self) -> str:
        return self._format(messages.EXTRA_COLUMN, self.table.name, self.column.name)

    def alter_clause(self) -> str:
        return f"DROP COLUMN `{self.column.name}`"


@dataclass(frozen=True)
class ColumnDifference(AlterTableDifference):
    """Column exists on both sides but one attribute differs.

    All column differences are fixed the same way: redefine the column with
    its full target definition.
    """

    stage: ClassVar[MigrationStage] = MigrationStage.MODIFY_COLUMNS

    column: ColumnSchema
    current_column: ColumnSchema

    def alter_clause(self) -> str:
        return f"MODIFY COLUMN {self.column.to_sql(self.table, self.charsets)}"


@dataclass(frozen=True)
class DifferentDataType(ColumnDifference):
    def describe(self) -> str:
        return self._format(
            messages.DIFFERENT_DATA_TYPE,
            self.table.name,
            self.column.name,
            self.column.data_type,
            self.current_column.data_type,
        )


@dataclass(frozen=True)
class DifferentNullable(ColumnDifference):
    def describe(self) -> str:
        template = (
            messages.SHOULD_BE_NULL if self.column.is_nullable else messages.SHOULD_BE_NOT_NULL
        )
        return self._format(template, self.table.name, self.column.name)


@dataclass(frozen=True)
class DifferentAutoIncrement(ColumnDifference):
    def describe(self) -> str:
        template = (
            messages.SHOULD_BE_AUTO_INCREMENT
            if self.column.auto_increment
            else messages.SHOULD_NOT_BE_AUTO_INCREMENT
        )
        return self._format(template, self.table.name, self.column.name)


@dataclass(frozen=True)
class DifferentDefaultValue(ColumnDifference):
    def describe(self) -> str:
        return self._format(
            messages.DIFFERENT_DEFAULT_VALUE,
            self.table.name,
            self.column.name,
            self.column.effective_default.describe(),
            self.current_column.effective_default.describe(),
        )


@dataclass(frozen=True)
class DifferentColumnCharset(ColumnDifference):
    def describe(self) -> str:
        return self._format(
            messages.DIFFERENT_COLUMN_CHARSET,
            self.table.name,
            self.column.name,
            self.column.charset.describe(),
            self.current_column.charset.describe(),
        )


# ============================================================================
# Keys
# ============================================================================


@dataclass(frozen=True)
class MissingKey(AlterTableDifference):
    """Target key does not exist in the current table."""

    stage: ClassVar[MigrationStage] = MigrationStage.CREATE_INDEXES

    key: TableKey

    def describe(self) -> str:
        return self._format(messages.MISSING_KEY, self.key.describe_key(), self.table.name)

    def alter_clause(self) -> str:
        return f"ADD {self.key.to_sql()}"


@dataclass(frozen=True)
class ExtraKey(AlterTableDifference):
    """Current key is not part of the target table."""

    stage: ClassVar[MigrationStage] = MigrationStage.DROP_INDEXES

    key: TableKey

    def describe(self) -> str:
        return self._format(messages.EXTRA_KEY, self.key.describe_key(), self.table.name)

    def alter_clause(self) -> str:
        return self.key.drop_sql()


@dataclass(frozen=True)
class DifferentKey(AlterTableDifference):
    """Key exists on both sides but its type, columns or name differ."""

    stage: ClassVar[MigrationStage] = MigrationStage.CREATE_INDEXES

    key: TableKey
    current_key: TableKey

    def describe(self) -> str:
        return self._format(messages.DIFFERENT_KEY, self.key.describe_key(), self.table.name)

    def alter_clause(self) -> str:
        return f"{self.current_key.drop_sql()}, ADD {self.key.to_sql()}"
