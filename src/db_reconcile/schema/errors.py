"""Exception classes for schema snapshots.

Lookups of absent tables, columns or keys raise a ``SchemaNotFoundError``
subclass. The comparator probes existence with ``has_*`` first, so these
only surface to callers that look up names directly.
"""


class SchemaError(Exception):
    """Base exception for schema model errors."""

    pass


class SchemaNotFoundError(SchemaError, KeyError):
    """Raised when a table, column or key lookup fails."""

    def __init__(self, kind: str, name: str, owner: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.owner = owner
        location = f" in table '{owner}'" if owner else ""
        super().__init__(f"{kind.capitalize()} '{name}' not found{location}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class TableNotFoundError(SchemaNotFoundError):
    """Raised when a table is not part of a database schema."""

    def __init__(self, name: str) -> None:
        super().__init__("table", name)


class ColumnNotFoundError(SchemaNotFoundError):
    """Raised when a column is not part of a table."""

    def __init__(self, name: str, table: str) -> None:
        super().__init__("column", name, table)


class KeyNotFoundError(SchemaNotFoundError):
    """Raised when a key is not part of a table."""

    def __init__(self, name: str, table: str) -> None:
        super().__init__("key", name, table)


class DuplicateNameError(SchemaError, ValueError):
    """Raised when a snapshot would contain two entities with the same name."""

    def __init__(self, kind: str, name: str, owner: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.owner = owner
        location = f" in table '{owner}'" if owner else ""
        super().__init__(f"Duplicate {kind} '{name}'{location}")


class SchemaParseError(SchemaError, ValueError):
    """Raised when a schema definition file cannot be parsed."""

    pass
