"""Pydantic models for relational schema snapshots.

This module contains the schema-domain models:
- Default values: NoDefault, DefaultIsNull, DefaultValue,
  DefaultCurrentTimestamp (tagged union ``ColumnDefault``)
- ColumnSchema, TableKey, TableSchema, DatabaseSchema

A snapshot is built once, either from live introspection
(``SchemaIntrospector``) or from static definitions (``parse_schema_sql``),
and is not modified while it is being compared.

Character set models live in db_reconcile.schema.charset.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from db_reconcile.schema.charset import CharsetCache, DatabaseCharset
from db_reconcile.schema.errors import (
    ColumnNotFoundError,
    DuplicateNameError,
    KeyNotFoundError,
    TableNotFoundError,
)

# Types that cannot carry a literal DEFAULT NULL clause
TEXT_TYPES = frozenset({"text", "mediumtext", "longtext"})


# ============================================================================
# Default Values
# ============================================================================


class NoDefault(BaseModel):
    """The column has no DEFAULT clause at all."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"

    def describe(self) -> str:
        return "none"


class DefaultIsNull(BaseModel):
    """The column has ``DEFAULT NULL``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["null"] = "null"

    def describe(self) -> str:
        return "NULL"


class DefaultCurrentTimestamp(BaseModel):
    """The column has ``DEFAULT CURRENT_TIMESTAMP``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["current_timestamp"] = "current_timestamp"

    def describe(self) -> str:
        return "CURRENT_TIMESTAMP"


class DefaultValue(BaseModel):
    """The column has a literal default, rendered as ``DEFAULT '<value>'``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["value"] = "value"
    value: str

    def describe(self) -> str:
        return f"'{self.value}'"


ColumnDefault = Annotated[
    Union[NoDefault, DefaultIsNull, DefaultCurrentTimestamp, DefaultValue],
    Field(discriminator="kind"),
]

NO_DEFAULT = NoDefault()
DEFAULT_NULL = DefaultIsNull()
DEFAULT_CURRENT_TIMESTAMP = DefaultCurrentTimestamp()


# ============================================================================
# Columns
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a single table column.

    ``nullable`` may be left unset, in which case ``is_nullable`` infers it:
    auto-increment columns are NOT NULL, columns with a default are nullable
    only if the default is ``DEFAULT NULL``, and everything else is nullable.

    Example:
        >>> col = ColumnSchema(name="id", data_type="int(11)", auto_increment=True)
        >>> col.is_nullable
        False
        >>> col.to_sql(TableSchema(name="orders"))
        '`id` int(11) NOT NULL AUTO_INCREMENT'
    """

    name: str
    data_type: str
    nullable: bool | None = None
    auto_increment: bool = False
    default: ColumnDefault = NO_DEFAULT
    charset: DatabaseCharset = Field(default_factory=DatabaseCharset)

    @property
    def is_nullable(self) -> bool:
        """True if the column can hold NULL."""
        if self.nullable is not None:
            return self.nullable
        if self.auto_increment:
            return False
        if self.has_default_value:
            return isinstance(self.default, DefaultIsNull)
        return True

    @property
    def has_default_value(self) -> bool:
        """True if the column has a DEFAULT clause, including DEFAULT NULL."""
        return not isinstance(self.default, NoDefault)

    @property
    def default_value(self) -> str | None:
        """Default value as a string.

        ``None`` both for "no default" and for ``DEFAULT NULL``; use
        ``default`` to tell those apart.
        """
        if isinstance(self.default, DefaultValue):
            return self.default.value
        if isinstance(self.default, DefaultCurrentTimestamp):
            return "CURRENT_TIMESTAMP"
        return None

    @property
    def effective_default(self) -> ColumnDefault:
        """Default the engine applies, treating implicit DEFAULT NULL as explicit.

        A nullable, non auto-increment column without a DEFAULT clause gets
        ``DEFAULT NULL`` from the engine.
        """
        if isinstance(self.default, NoDefault) and self.is_nullable and not self.auto_increment:
            return DEFAULT_NULL
        return self.default

    def to_sql(self, table: "TableSchema", charsets: CharsetCache | None = None) -> str:
        """Generate the column definition used in CREATE / ALTER TABLE.

        Clause order: name and type, charset or collation, NOT NULL,
        DEFAULT, AUTO_INCREMENT.

        Literal defaults are quoted but not escaped, so they must come from
        trusted schema definitions.

        Args:
            table: Table owning the column; its charset decides whether a
                CHARACTER SET clause is redundant.
            charsets: Default-collation lookup. Without it no collation is
                treated as a default, so any collation is emitted as COLLATE.
        """
        sql = f"`{self.name}` {self.data_type}"

        charset = self.charset
        if charset.charset and charset.collate and charset.is_default_collate(charsets):
            if table.charset.charset != charset.charset:
                sql += f" CHARACTER SET {charset.charset}"
        elif charset.collate:
            sql += f" COLLATE {charset.collate}"

        if not self.is_nullable:
            sql += " NOT NULL"

        default = self.default
        if isinstance(default, DefaultIsNull):
            if self.data_type.lower() not in TEXT_TYPES:
                sql += " DEFAULT NULL"
        elif isinstance(default, DefaultCurrentTimestamp):
            sql += " DEFAULT CURRENT_TIMESTAMP"
        elif isinstance(default, DefaultValue):
            sql += f" DEFAULT '{default.value}'"

        if self.auto_increment:
            sql += " AUTO_INCREMENT"

        return sql


# ============================================================================
# Keys
# ============================================================================


class KeyType(str, Enum):
    """Kind of table key / index."""

    PRIMARY = "primary"
    UNIQUE = "unique"
    INDEX = "index"
    FULLTEXT = "fulltext"


PRIMARY_KEY_NAME = "PRIMARY"


class TableKey(BaseModel):
    """Schema for a table key (index).

    Column order is the index column order and is significant.

    Example:
        >>> key = TableKey(name="idx_email", key_type=KeyType.UNIQUE, columns=["email"])
        >>> key.to_sql()
        'UNIQUE KEY `idx_email` (`email`)'
        >>> key.describe_key()
        'unique key idx_email'
    """

    model_config = ConfigDict(frozen=True)

    name: str
    key_type: KeyType
    columns: tuple[str, ...] = Field(min_length=1)

    @property
    def is_primary(self) -> bool:
        return self.key_type is KeyType.PRIMARY

    def is_equivalent(self, other: "TableKey") -> bool:
        """True if both keys have the same type and the same ordered columns."""
        return self.key_type is other.key_type and self.columns == other.columns

    def describe_key(self) -> str:
        """Human readable label for the key."""
        if self.key_type is KeyType.PRIMARY:
            return "primary key"
        if self.key_type is KeyType.UNIQUE:
            return f"unique key {self.name}"
        if self.key_type is KeyType.FULLTEXT:
            return f"fulltext key {self.name}"
        return f"key {self.name}"

    def to_sql(self) -> str:
        """Generate the key definition used in CREATE / ALTER TABLE."""
        columns = ", ".join(f"`{column}`" for column in self.columns)
        if self.key_type is KeyType.PRIMARY:
            return f"PRIMARY KEY ({columns})"
        if self.key_type is KeyType.UNIQUE:
            return f"UNIQUE KEY `{self.name}` ({columns})"
        if self.key_type is KeyType.FULLTEXT:
            return f"FULLTEXT KEY `{self.name}` ({columns})"
        return f"KEY `{self.name}` ({columns})"

    def drop_sql(self) -> str:
        """Generate the ALTER TABLE clause that removes this key."""
        if self.key_type is KeyType.PRIMARY:
            return "DROP PRIMARY KEY"
        return f"DROP KEY `{self.name}`"


# ============================================================================
# Tables
# ============================================================================


def _ensure_unique(kind: str, names: list[str], owner: str | None = None) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise DuplicateNameError(kind, name, owner)
        seen.add(name)


class TableSchema(BaseModel):
    """Schema for a database table.

    Columns keep their declared order; column and key names are unique.
    """

    name: str
    columns: list[ColumnSchema] = Field(default_factory=list)
    keys: list[TableKey] = Field(default_factory=list)
    charset: DatabaseCharset = Field(default_factory=DatabaseCharset)

    @model_validator(mode="after")
    def _check_unique_names(self) -> "TableSchema":
        _ensure_unique("column", [c.name for c in self.columns], self.name)
        _ensure_unique("key", [k.name for k in self.keys], self.name)
        return self

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    @property
    def key_names(self) -> list[str]:
        return [key.name for key in self.keys]

    def add_column(self, column: ColumnSchema) -> None:
        """Append a column.

        Raises:
            DuplicateNameError: If a column with the same name exists.
        """
        if self.has_column(column.name):
            raise DuplicateNameError("column", column.name, self.name)
        self.columns.append(column)

    def has_column(self, name: str) -> bool:
        return any(column.name == name for column in self.columns)

    def get_column(self, name: str) -> ColumnSchema:
        """Return the column called ``name``.

        Raises:
            ColumnNotFoundError: If the table has no such column.
        """
        for column in self.columns:
            if column.name == name:
                return column
        raise ColumnNotFoundError(name, self.name)

    def add_key(self, key: TableKey) -> None:
        """Append a key.

        Raises:
            DuplicateNameError: If a key with the same name exists.
        """
        if self.has_key(key.name):
            raise DuplicateNameError("key", key.name, self.name)
        self.keys.append(key)

    def has_key(self, name: str) -> bool:
        return any(key.name == name for key in self.keys)

    def get_key(self, name: str) -> TableKey:
        """Return the key called ``name``.

        Raises:
            KeyNotFoundError: If the table has no such key.
        """
        for key in self.keys:
            if key.name == name:
                return key
        raise KeyNotFoundError(name, self.name)

    def get_primary_key(self) -> TableKey | None:
        for key in self.keys:
            if key.is_primary:
                return key
        return None

    def to_sql(self, charsets: CharsetCache | None = None) -> str:
        """Generate the CREATE TABLE statement.

        Columns come first in declared order, then keys, then the table
        charset and collation options.
        """
        lines = [column.to_sql(self, charsets) for column in self.columns]
        lines.extend(key.to_sql() for key in self.keys)

        sql = f"CREATE TABLE `{self.name}` (\n"
        sql += ",\n".join(f"  {line}" for line in lines)
        sql += "\n)"
        if self.charset.charset:
            sql += f" DEFAULT CHARSET={self.charset.charset}"
        if self.charset.collate:
            sql += f" COLLATE={self.charset.collate}"
        return sql


# ============================================================================
# Database
# ============================================================================


class DatabaseSchema(BaseModel):
    """Complete database schema snapshot, tables keyed by name.

    ``get_tables()`` makes no ordering promise; ordering is up to the
    comparator.
    """

    tables: dict[str, TableSchema] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_table_keys(self) -> "DatabaseSchema":
        for name, table in self.tables.items():
            if name != table.name:
                raise ValueError(
                    f"Table registered as '{name}' is named '{table.name}'"
                )
        return self

    @classmethod
    def from_tables(cls, tables: list[TableSchema]) -> "DatabaseSchema":
        """Build a schema from a list of tables.

        Raises:
            DuplicateNameError: If two tables share a name.
        """
        schema = cls()
        for table in tables:
            schema.add_table(table)
        return schema

    def add_table(self, table: TableSchema) -> None:
        """Register a table.

        Raises:
            DuplicateNameError: If a table with the same name exists.
        """
        if table.name in self.tables:
            raise DuplicateNameError("table", table.name)
        self.tables[table.name] = table

    def has_table(self, name: str) -> bool:
        return name in self.tables

    def get_table(self, name: str) -> TableSchema:
        """Return the table called ``name``.

        Raises:
            TableNotFoundError: If the schema has no such table.
        """
        try:
            return self.tables[name]
        except KeyError:
            raise TableNotFoundError(name) from None

    def get_tables(self) -> list[TableSchema]:
        return list(self.tables.values())
