"""Tests for SchemaDifference variants: descriptions and corrective DDL."""

from unittest.mock import MagicMock

import pytest

from db_reconcile.schema import messages
from db_reconcile.schema.charset import CharsetCache, DatabaseCharset
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
    MigrationStage,
    MissingColumn,
    MissingKey,
    MissingTable,
    SchemaDifference,
)
from db_reconcile.schema.models import (
    DEFAULT_NULL,
    ColumnSchema,
    DefaultValue,
    KeyType,
    TableKey,
    TableSchema,
)


def _column(table: TableSchema, name: str) -> ColumnSchema:
    return table.get_column(name)


class TestFamily:
    """Shared contract of all variants."""

    def test_base_class_is_abstract(self, orders_table: TableSchema) -> None:
        with pytest.raises(TypeError):
            SchemaDifference(orders_table)  # type: ignore[abstract]

    def test_kind_and_table_name(self, orders_table: TableSchema) -> None:
        diff = MissingTable(orders_table)
        assert diff.kind == "MissingTable"
        assert diff.table_name == "tb_orders"

    def test_only_drops_of_data_are_destructive(self, orders_table: TableSchema) -> None:
        column = _column(orders_table, "reference")
        assert ExtraTable(orders_table).destructive
        assert ExtraColumn(orders_table, column).destructive
        assert not MissingTable(orders_table).destructive
        assert not DifferentNullable(orders_table, column, column).destructive

    def test_injected_formatter_receives_template(self, orders_table: TableSchema) -> None:
        formatter = MagicMock(return_value="La table `tb_orders` est manquante")
        diff = MissingTable(orders_table, formatter=formatter)

        assert diff.describe() == "La table `tb_orders` est manquante"
        formatter.assert_called_once_with(messages.MISSING_TABLE, "tb_orders")

    def test_formatter_and_charsets_excluded_from_equality(
        self, orders_table: TableSchema, charsets: CharsetCache
    ) -> None:
        assert MissingTable(orders_table, charsets=charsets) == MissingTable(orders_table)


class TestTableDifferences:
    def test_missing_table(self, orders_table: TableSchema, charsets: CharsetCache) -> None:
        diff = MissingTable(orders_table, charsets=charsets)
        assert diff.describe() == "Table `tb_orders` is missing"
        assert diff.to_sql() == orders_table.to_sql(charsets)
        assert diff.stage is MigrationStage.CREATE_TABLES

    def test_extra_table(self) -> None:
        diff = ExtraTable(TableSchema(name="tb_legacy"))
        assert diff.describe() == "Table `tb_legacy` is not part of the target schema"
        assert diff.to_sql() == "DROP TABLE `tb_legacy`"
        assert diff.stage is MigrationStage.DROP_TABLES

    def test_different_table_charset(self, orders_table: TableSchema) -> None:
        current = orders_table.model_copy(
            update={"charset": DatabaseCharset(charset="utf8", collate="utf8_general_ci")}
        )
        diff = DifferentTableCharset(orders_table, current)
        assert diff.describe() == (
            "Table `tb_orders` should use character set utf8mb4/utf8mb4_unicode_ci "
            "instead of utf8/utf8_general_ci"
        )
        assert diff.to_sql() == (
            "ALTER TABLE `tb_orders` DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"
        )


class TestColumnDifferences:
    def test_missing_first_column(self, orders_table: TableSchema) -> None:
        diff = MissingColumn(orders_table, _column(orders_table, "id_order"))
        assert diff.describe() == "Column `tb_orders`.`id_order` is missing"
        assert diff.to_sql() == (
            "ALTER TABLE `tb_orders` ADD COLUMN "
            "`id_order` int(11) unsigned NOT NULL AUTO_INCREMENT FIRST"
        )
        assert diff.stage is MigrationStage.ADD_COLUMNS

    def test_missing_column_after_previous(self, orders_table: TableSchema) -> None:
        diff = MissingColumn(orders_table, _column(orders_table, "total_paid"))
        assert diff.to_sql() == (
            "ALTER TABLE `tb_orders` ADD COLUMN "
            "`total_paid` decimal(20,6) NOT NULL DEFAULT '0.000000' AFTER `reference`"
        )

    def test_extra_column(self, orders_table: TableSchema) -> None:
        legacy = ColumnSchema(name="legacy", data_type="tinyint(1)")
        diff = ExtraColumn(orders_table, legacy)
        assert diff.describe() == "Column `tb_orders`.`legacy` is not part of the target schema"
        assert diff.to_sql() == "ALTER TABLE `tb_orders` DROP COLUMN `legacy`"
        assert diff.stage is MigrationStage.DROP_COLUMNS

    def test_different_data_type(self, orders_table: TableSchema) -> None:
        target = _column(orders_table, "reference")
        current = target.model_copy(update={"data_type": "varchar(8)"})
        diff = DifferentDataType(orders_table, target, current)
        assert diff.describe() == (
            "Column `tb_orders`.`reference` should be of type varchar(9) instead of varchar(8)"
        )

    def test_column_differences_modify_with_target_definition(
        self, orders_table: TableSchema, charsets: CharsetCache
    ) -> None:
        target = _column(orders_table, "reference")
        current = target.model_copy(update={"nullable": True})
        diff = DifferentNullable(orders_table, target, current, charsets=charsets)
        assert diff.to_sql() == "ALTER TABLE `tb_orders` MODIFY COLUMN `reference` varchar(9) NOT NULL"
        assert diff.stage is MigrationStage.MODIFY_COLUMNS

    def test_should_be_not_null(self, orders_table: TableSchema) -> None:
        target = _column(orders_table, "reference")
        current = target.model_copy(update={"nullable": True})
        diff = DifferentNullable(orders_table, target, current)
        assert diff.describe() == "Column `tb_orders`.`reference` should be marked as NOT NULL"

    def test_should_be_null(self) -> None:
        table = TableSchema(
            name="t", columns=[ColumnSchema(name="note", data_type="varchar(8)", nullable=True)]
        )
        target = table.get_column("note")
        current = target.model_copy(update={"nullable": False})
        diff = DifferentNullable(table, target, current)
        assert diff.describe() == "Column `t`.`note` should be marked as NULL"

    def test_should_be_auto_increment(self, orders_table: TableSchema) -> None:
        target = _column(orders_table, "id_order")
        current = target.model_copy(update={"auto_increment": False})
        diff = DifferentAutoIncrement(orders_table, target, current)
        assert diff.describe() == "Column `tb_orders`.`id_order` should be marked as AUTO_INCREMENT"

    def test_should_not_be_auto_increment(self, orders_table: TableSchema) -> None:
        target = _column(orders_table, "total_paid")
        current = target.model_copy(update={"auto_increment": True})
        diff = DifferentAutoIncrement(orders_table, target, current)
        assert diff.describe() == (
            "Column `tb_orders`.`total_paid` should NOT be marked as AUTO_INCREMENT"
        )

    def test_different_default_value(self, orders_table: TableSchema) -> None:
        target = _column(orders_table, "total_paid")
        current = target.model_copy(update={"default": DefaultValue(value="1")})
        diff = DifferentDefaultValue(orders_table, target, current)
        assert diff.describe() == (
            "Column `tb_orders`.`total_paid` should have default value '0.000000' instead of '1'"
        )

    def test_different_default_null_vs_implicit(self) -> None:
        table = TableSchema(
            name="t",
            columns=[ColumnSchema(name="c", data_type="int(11)", nullable=False, default=DefaultValue(value="0"))],
        )
        target = table.get_column("c")
        current = ColumnSchema(name="c", data_type="int(11)", default=DEFAULT_NULL)
        diff = DifferentDefaultValue(table, target, current)
        assert diff.describe() == "Column `t`.`c` should have default value '0' instead of NULL"

    def test_different_column_charset(self, orders_table: TableSchema) -> None:
        target = _column(orders_table, "reference")
        current = target.model_copy(
            update={"charset": DatabaseCharset(charset="latin1", collate="latin1_swedish_ci")}
        )
        diff = DifferentColumnCharset(orders_table, target, current)
        assert diff.describe() == (
            "Column `tb_orders`.`reference` should use character set "
            "utf8mb4/utf8mb4_unicode_ci instead of latin1/latin1_swedish_ci"
        )


class TestKeyDifferences:
    def test_missing_primary_key(self, orders_table: TableSchema) -> None:
        diff = MissingKey(orders_table, orders_table.get_key("PRIMARY"))
        assert diff.describe() == "Missing primary key in table `tb_orders`"
        assert diff.to_sql() == "ALTER TABLE `tb_orders` ADD PRIMARY KEY (`id_order`)"
        assert diff.stage is MigrationStage.CREATE_INDEXES

    def test_missing_unique_key(self, orders_table: TableSchema) -> None:
        diff = MissingKey(orders_table, orders_table.get_key("reference"))
        assert diff.describe() == "Missing unique key reference in table `tb_orders`"
        assert diff.to_sql() == "ALTER TABLE `tb_orders` ADD UNIQUE KEY `reference` (`reference`)"

    def test_extra_key(self, orders_table: TableSchema) -> None:
        key = TableKey(name="old_idx", key_type=KeyType.INDEX, columns=["date_add"])
        diff = ExtraKey(orders_table, key)
        assert diff.describe() == "Extra key old_idx in table `tb_orders`"
        assert diff.to_sql() == "ALTER TABLE `tb_orders` DROP KEY `old_idx`"
        assert diff.stage is MigrationStage.DROP_INDEXES

    def test_extra_primary_key(self, orders_table: TableSchema) -> None:
        key = TableKey(name="PRIMARY", key_type=KeyType.PRIMARY, columns=["reference"])
        assert ExtraKey(orders_table, key).to_sql() == "ALTER TABLE `tb_orders` DROP PRIMARY KEY"

    def test_different_key_replaces_in_one_statement(self, orders_table: TableSchema) -> None:
        target = orders_table.get_key("reference")
        current = TableKey(name="reference", key_type=KeyType.INDEX, columns=["reference"])
        diff = DifferentKey(orders_table, target, current)
        assert diff.describe() == "Different unique key reference in table `tb_orders`"
        assert diff.to_sql() == (
            "ALTER TABLE `tb_orders` DROP KEY `reference`, ADD UNIQUE KEY `reference` (`reference`)"
        )

    def test_different_primary_key(self, orders_table: TableSchema) -> None:
        target = orders_table.get_key("PRIMARY")
        current = TableKey(name="PRIMARY", key_type=KeyType.PRIMARY, columns=["id_order", "reference"])
        diff = DifferentKey(orders_table, target, current)
        assert diff.to_sql() == (
            "ALTER TABLE `tb_orders` DROP PRIMARY KEY, ADD PRIMARY KEY (`id_order`)"
        )
