"""Target schema loading from MySQL ``CREATE TABLE`` statements.

The target schema is a versioned SQL file (for example a ``mysqldump
--no-data`` export, or a hand-written ``schema.sql``). This module reads
the ``CREATE TABLE`` statements in it into a ``DatabaseSchema``.

Supported per column: type (with ``unsigned`` / ``zerofill``), ``NULL`` /
``NOT NULL``, ``DEFAULT``, ``AUTO_INCREMENT``, ``CHARACTER SET`` /
``CHARSET``, ``COLLATE`` and inline ``PRIMARY KEY`` / ``UNIQUE``.
Supported keys: ``PRIMARY KEY``, ``UNIQUE``, ``KEY`` / ``INDEX`` and
``FULLTEXT``. Foreign keys, checks and comments are skipped.

Textual columns without their own charset inherit the table charset, the
same way the engine resolves them, so a parsed schema compares cleanly
against an introspected one.

Usage:
    from db_reconcile.schema.parser import load_schema_file

    target = load_schema_file("schema.sql", charsets)
    target.get_table("orders").column_names
    # ['id', 'customer_id', 'total']
"""

import logging
import re
from pathlib import Path

from db_reconcile.schema.charset import CharsetCache, DatabaseCharset
from db_reconcile.schema.errors import SchemaParseError
from db_reconcile.schema.models import (
    DEFAULT_CURRENT_TIMESTAMP,
    DEFAULT_NULL,
    NO_DEFAULT,
    PRIMARY_KEY_NAME,
    ColumnDefault,
    ColumnSchema,
    DatabaseSchema,
    DefaultValue,
    KeyType,
    TableKey,
    TableSchema,
)

logger = logging.getLogger(__name__)

TEXTUAL_TYPES = frozenset(
    {"char", "varchar", "tinytext", "text", "mediumtext", "longtext", "enum", "set"}
)

_CREATE_TABLE = re.compile(
    r"CREATE\s+(?:TEMPORARY\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    r"((?:`[^`]+`|\w+)(?:\s*\.\s*(?:`[^`]+`|\w+))?)\s*\(",
    re.IGNORECASE,
)
_TABLE_CHARSET = re.compile(
    r"(?:DEFAULT\s+)?(?:CHARACTER\s+SET|CHARSET)\s*=?\s*(\w+)", re.IGNORECASE
)
_TABLE_COLLATE = re.compile(r"(?:DEFAULT\s+)?COLLATE\s*=?\s*(\w+)", re.IGNORECASE)
_TOKEN = re.compile(
    r"'(?:[^'\\]|\\.|'')*'"
    r'|"(?:[^"\\]|\\.)*"'
    r"|`[^`]*`"
    r"|[(),]"
    r"|[^\s(),]+"
)
_CURRENT_TIMESTAMP = {"CURRENT_TIMESTAMP", "NOW", "LOCALTIMESTAMP", "LOCALTIME"}
_SKIPPED_DEFINITIONS = {"FOREIGN", "CHECK", "SPATIAL", "PERIOD"}
_CONSTRAINT_KINDS = {"PRIMARY", "UNIQUE", "FOREIGN", "CHECK"}


# ============================================================================
# Public API
# ============================================================================


def load_schema_file(
    path: str | Path,
    charsets: CharsetCache | None = None,
    table_prefix: str = "",
) -> DatabaseSchema:
    """Read a SQL file and parse its CREATE TABLE statements.

    Args:
        path: Path to the SQL schema file.
        charsets: Default-collation lookup used to complete charsets given
            without a collation.
        table_prefix: Prepended to every table name in the file.

    Raises:
        FileNotFoundError: If the file does not exist.
        SchemaParseError: If a statement cannot be parsed or no table is found.
    """
    schema_path = Path(path)
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")

    schema = parse_schema_sql(schema_path.read_text(), charsets, table_prefix)
    if not schema.tables:
        raise SchemaParseError(f"No CREATE TABLE statements found in {schema_path.name}")
    return schema


def parse_schema_sql(
    sql: str,
    charsets: CharsetCache | None = None,
    table_prefix: str = "",
) -> DatabaseSchema:
    """Parse CREATE TABLE statements into a ``DatabaseSchema``.

    Args:
        sql: SQL text; statements other than CREATE TABLE are ignored.
        charsets: Default-collation lookup used to complete charsets given
            without a collation.
        table_prefix: Prepended to every table name, for schema files
            written without the deployment prefix.

    Returns:
        ``DatabaseSchema`` with one table per CREATE TABLE statement.

    Raises:
        SchemaParseError: On unbalanced parentheses, unparseable definitions
            or duplicate names.
    """
    sql = _strip_comments(sql)
    schema = DatabaseSchema()

    position = 0
    while True:
        match = _CREATE_TABLE.search(sql, position)
        if match is None:
            break
        table_name = table_prefix + _unquote_identifier(match.group(1).split(".")[-1].strip())
        body_start = match.end() - 1
        body_end = _find_closing(sql, body_start)
        if body_end < 0:
            raise SchemaParseError(f"Unbalanced parentheses in CREATE TABLE {table_name}")

        options_end = _find_statement_end(sql, body_end + 1)
        options = sql[body_end + 1 : options_end]
        body = sql[body_start + 1 : body_end]

        table = _parse_table(table_name, body, options, charsets)
        if schema.has_table(table.name):
            raise SchemaParseError(f"Duplicate CREATE TABLE for {table.name}")
        schema.add_table(table)
        logger.debug(f"Parsed table {table.name} ({len(table.columns)} columns)")
        position = options_end

    return schema


# ============================================================================
# Statement parsing
# ============================================================================


def _parse_table(
    name: str, body: str, options: str, charsets: CharsetCache | None
) -> TableSchema:
    table_charset = _parse_table_charset(options, charsets)

    columns: list[ColumnSchema] = []
    keys: list[TableKey] = []
    primary_columns: set[str] = set()

    for definition in _split_top_level(body):
        tokens = _tokenize(definition)
        if not tokens:
            continue
        head = tokens[0].upper()

        if head == "CONSTRAINT":
            # CONSTRAINT [symbol] PRIMARY KEY | UNIQUE | FOREIGN KEY | CHECK
            tokens = tokens[1:]
            if tokens and tokens[0].upper() not in _CONSTRAINT_KINDS:
                tokens = tokens[1:]
            head = tokens[0].upper() if tokens else ""

        if head in _SKIPPED_DEFINITIONS:
            continue
        if head in ("PRIMARY", "UNIQUE", "KEY", "INDEX", "FULLTEXT"):
            keys.append(_parse_key(tokens, name))
            continue

        column, inline_key = _parse_column(tokens, name)
        columns.append(column)
        if inline_key is not None:
            keys.append(inline_key)

    for key in keys:
        if key.is_primary:
            primary_columns.update(key.columns)

    columns = [
        _resolve_column(column, table_charset, column.name in primary_columns, charsets)
        for column in columns
    ]

    try:
        return TableSchema(name=name, columns=columns, keys=keys, charset=table_charset)
    except ValueError as e:
        raise SchemaParseError(f"Invalid table {name}: {e}") from e


def _parse_table_charset(options: str, charsets: CharsetCache | None) -> DatabaseCharset:
    charset_match = _TABLE_CHARSET.search(options)
    collate_match = _TABLE_COLLATE.search(options)
    charset = charset_match.group(1).lower() if charset_match else None
    collate = collate_match.group(1).lower() if collate_match else None
    return _complete_charset(charset, collate, charsets)


def _complete_charset(
    charset: str | None, collate: str | None, charsets: CharsetCache | None
) -> DatabaseCharset:
    """Fill in the half of a charset/collation pair the engine would derive."""
    if collate and not charset:
        charset = collate.split("_", 1)[0]
    if charset and not collate and charsets is not None:
        collate = charsets.default_collate(charset)
    return DatabaseCharset(charset=charset, collate=collate)


def _parse_key(tokens: list[str], table: str) -> TableKey:
    head = tokens[0].upper()
    rest = tokens[1:]

    if head == "PRIMARY":
        key_type = KeyType.PRIMARY
    elif head == "UNIQUE":
        key_type = KeyType.UNIQUE
    elif head == "FULLTEXT":
        key_type = KeyType.FULLTEXT
    else:
        key_type = KeyType.INDEX

    # Drop the KEY / INDEX keyword that follows PRIMARY, UNIQUE or FULLTEXT
    if head != "KEY" and head != "INDEX" and rest and rest[0].upper() in ("KEY", "INDEX"):
        rest = rest[1:]

    name: str | None = None
    if rest and rest[0] != "(" and rest[0].upper() != "USING":
        name = _unquote_identifier(rest[0])
        rest = rest[1:]
    # Skip an index type given before the column list (USING BTREE)
    while rest and rest[0] != "(":
        rest = rest[1:]

    columns = _parse_key_columns(rest)
    if not columns:
        raise SchemaParseError(f"Key without columns in table {table}")

    if key_type is KeyType.PRIMARY:
        name = PRIMARY_KEY_NAME
    elif name is None:
        # Unnamed keys are named after their first column
        name = columns[0]

    return TableKey(name=name, key_type=key_type, columns=columns)


def _parse_key_columns(tokens: list[str]) -> list[str]:
    """Read ``(col [(len)] [ASC|DESC], ...)`` and return the column names."""
    if not tokens or tokens[0] != "(":
        return []
    columns: list[str] = []
    depth = 0
    expect_name = True
    for token in tokens:
        if token == "(":
            depth += 1
            continue
        if token == ")":
            depth -= 1
            if depth == 0:
                break
            continue
        if depth == 1:
            if token == ",":
                expect_name = True
            elif expect_name:
                columns.append(_unquote_identifier(token))
                expect_name = False
    return columns


def _parse_column(tokens: list[str], table: str) -> tuple[ColumnSchema, TableKey | None]:
    if len(tokens) < 2:
        raise SchemaParseError(f"Cannot parse column definition in table {table}: {tokens}")

    name = _unquote_identifier(tokens[0])
    data_type, index = _read_data_type(tokens, 1)

    nullable: bool | None = None
    auto_increment = False
    default: ColumnDefault | None = None
    charset: str | None = None
    collate: str | None = None
    inline_key: TableKey | None = None

    while index < len(tokens):
        word = tokens[index].upper()
        following = tokens[index + 1].upper() if index + 1 < len(tokens) else ""

        if word == "NOT" and following == "NULL":
            nullable = False
            index += 2
        elif word == "NULL":
            nullable = True
            index += 1
        elif word == "DEFAULT":
            default, index = _read_default(tokens, index + 1, table, name)
        elif word == "AUTO_INCREMENT":
            auto_increment = True
            index += 1
        elif word == "CHARACTER" and following == "SET":
            charset = tokens[index + 2].lower() if index + 2 < len(tokens) else None
            index += 3
        elif word == "CHARSET":
            charset = following.lower() or None
            index += 2
        elif word == "COLLATE":
            collate = following.lower() or None
            index += 2
        elif word == "PRIMARY" and following == "KEY":
            inline_key = TableKey(name=PRIMARY_KEY_NAME, key_type=KeyType.PRIMARY, columns=[name])
            index += 2
        elif word == "UNIQUE":
            inline_key = TableKey(name=name, key_type=KeyType.UNIQUE, columns=[name])
            index += 2 if following == "KEY" else 1
        elif word == "ON" and following == "UPDATE":
            # ON UPDATE CURRENT_TIMESTAMP[(n)]
            _, index = _read_default(tokens, index + 2, table, name)
        elif word == "COMMENT":
            index += 2
        else:
            index += 1

    column = ColumnSchema(
        name=name,
        data_type=data_type,
        nullable=nullable,
        auto_increment=auto_increment,
        default=default if default is not None else NO_DEFAULT,
        charset=DatabaseCharset(charset=charset, collate=collate),
    )
    return column, inline_key


def _read_data_type(tokens: list[str], index: int) -> tuple[str, int]:
    """Read ``type[(args)] [unsigned] [zerofill]`` starting at ``index``."""
    data_type = tokens[index].lower()
    index += 1

    if index < len(tokens) and tokens[index] == "(":
        depth = 0
        args = ""
        while index < len(tokens):
            token = tokens[index]
            if token == "(":
                depth += 1
            elif token == ")":
                depth -= 1
            args += token
            index += 1
            if depth == 0:
                break
        data_type += args

    while index < len(tokens) and tokens[index].lower() in ("unsigned", "zerofill"):
        data_type += f" {tokens[index].lower()}"
        index += 1

    return data_type, index


def _read_default(
    tokens: list[str], index: int, table: str, column: str
) -> tuple[ColumnDefault, int]:
    if index >= len(tokens):
        raise SchemaParseError(f"DEFAULT without value for column {table}.{column}")

    token = tokens[index]
    index += 1
    upper = token.upper()

    if upper in _CURRENT_TIMESTAMP:
        # Optional precision or empty call parentheses
        if index < len(tokens) and tokens[index] == "(":
            while index < len(tokens) and tokens[index] != ")":
                index += 1
            index += 1
        return DEFAULT_CURRENT_TIMESTAMP, index
    if upper == "NULL":
        return DEFAULT_NULL, index
    if token[0] in ("'", '"'):
        return DefaultValue(value=_unquote_string(token)), index
    return DefaultValue(value=token), index


def _resolve_column(
    column: ColumnSchema,
    table_charset: DatabaseCharset,
    in_primary_key: bool,
    charsets: CharsetCache | None,
) -> ColumnSchema:
    """Apply the engine's implicit rules to a parsed column."""
    update: dict = {}

    if in_primary_key:
        update["nullable"] = False
    elif column.nullable is None and not column.auto_increment:
        update["nullable"] = True

    base_type = column.data_type.split("(", 1)[0].split(" ", 1)[0]
    if base_type in TEXTUAL_TYPES:
        if column.charset.is_empty:
            update["charset"] = table_charset
        else:
            update["charset"] = _complete_charset(
                column.charset.charset, column.charset.collate, charsets
            )
    elif not column.charset.is_empty:
        update["charset"] = DatabaseCharset()

    return column.model_copy(update=update) if update else column


# ============================================================================
# Lexing helpers
# ============================================================================


def _strip_comments(sql: str) -> str:
    """Remove ``--``, ``#`` and ``/* */`` comments outside of quoted strings."""
    out: list[str] = []
    quote: str | None = None
    index = 0
    length = len(sql)

    while index < length:
        char = sql[index]
        if quote:
            out.append(char)
            if char == "\\" and quote != "`" and index + 1 < length:
                out.append(sql[index + 1])
                index += 2
                continue
            if char == quote:
                quote = None
            index += 1
            continue

        if char in ("'", '"', "`"):
            quote = char
            out.append(char)
            index += 1
        elif char == "#" or (
            sql.startswith("--", index) and (index + 2 >= length or sql[index + 2].isspace())
        ):
            newline = sql.find("\n", index)
            index = length if newline < 0 else newline
        elif sql.startswith("/*", index):
            end = sql.find("*/", index + 2)
            index = length if end < 0 else end + 2
            out.append(" ")
        else:
            out.append(char)
            index += 1

    return "".join(out)


def _iter_unquoted(text: str, start: int = 0):
    """Yield ``(index, char)`` for characters outside quoted strings."""
    quote: str | None = None
    index = start
    while index < len(text):
        char = text[index]
        if quote:
            if char == "\\" and quote != "`":
                index += 2
                continue
            if char == quote:
                quote = None
        elif char in ("'", '"', "`"):
            quote = char
        else:
            yield index, char
        index += 1


def _find_closing(text: str, open_index: int) -> int:
    """Index of the parenthesis closing the one at ``open_index``, or -1."""
    depth = 0
    for index, char in _iter_unquoted(text, open_index):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _find_statement_end(text: str, start: int) -> int:
    for index, char in _iter_unquoted(text, start):
        if char == ";":
            return index
    return len(text)


def _split_top_level(text: str) -> list[str]:
    """Split on commas that are not nested in parentheses or quotes."""
    parts: list[str] = []
    depth = 0
    last = 0
    for index, char in _iter_unquoted(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(text[last:index].strip())
            last = index + 1
    parts.append(text[last:].strip())
    return [part for part in parts if part]


def _tokenize(definition: str) -> list[str]:
    return _TOKEN.findall(definition)


def _unquote_identifier(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("`", '"'):
        return token[1:-1]
    return token


def _unquote_string(token: str) -> str:
    quote = token[0]
    value = token[1:-1]
    value = value.replace(quote * 2, quote)
    return re.sub(r"\\(.)", r"\1", value)
