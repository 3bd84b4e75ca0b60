"""Shared fixtures for schema tests."""

import pytest

from db_reconcile.schema.charset import CharsetCache, DatabaseCharset
from db_reconcile.schema.models import (
    DEFAULT_CURRENT_TIMESTAMP,
    ColumnSchema,
    DefaultValue,
    KeyType,
    TableKey,
    TableSchema,
)

UTF8MB4 = DatabaseCharset(charset="utf8mb4", collate="utf8mb4_unicode_ci")


@pytest.fixture
def charsets() -> CharsetCache:
    """Charset cache with a few common MySQL defaults."""
    return CharsetCache.from_mapping(
        {
            "utf8mb4": "utf8mb4_unicode_ci",
            "utf8": "utf8_general_ci",
            "latin1": "latin1_swedish_ci",
        }
    )


@pytest.fixture
def orders_table() -> TableSchema:
    """A typical target table: primary key, unique key, textual column."""
    return TableSchema(
        name="tb_orders",
        columns=[
            ColumnSchema(
                name="id_order",
                data_type="int(11) unsigned",
                nullable=False,
                auto_increment=True,
            ),
            ColumnSchema(
                name="reference",
                data_type="varchar(9)",
                nullable=False,
                charset=UTF8MB4,
            ),
            ColumnSchema(
                name="total_paid",
                data_type="decimal(20,6)",
                nullable=False,
                default=DefaultValue(value="0.000000"),
            ),
            ColumnSchema(
                name="date_add",
                data_type="datetime",
                nullable=False,
                default=DEFAULT_CURRENT_TIMESTAMP,
            ),
        ],
        keys=[
            TableKey(name="PRIMARY", key_type=KeyType.PRIMARY, columns=["id_order"]),
            TableKey(name="reference", key_type=KeyType.UNIQUE, columns=["reference"]),
        ],
        charset=UTF8MB4,
    )
