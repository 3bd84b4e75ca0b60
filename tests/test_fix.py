"""Tests for fix plan generation and application."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from db_reconcile.schema.differences import (
    DifferentAutoIncrement,
    DifferentDataType,
    DifferentNullable,
    ExtraColumn,
    ExtraKey,
    ExtraTable,
    MigrationStage,
    MissingColumn,
    MissingKey,
    MissingTable,
)
from db_reconcile.schema.fix import (
    FixPlan,
    FixResult,
    FixStatement,
    apply_fixes,
    generate_fix_plan,
)
from db_reconcile.schema.models import ColumnSchema, KeyType, TableKey, TableSchema


@pytest.fixture
def old_key() -> TableKey:
    return TableKey(name="old_idx", key_type=KeyType.INDEX, columns=["total_paid"])


class TestGenerateFixPlan:
    """Ordering, deduplication and destructive filtering."""

    def test_empty(self) -> None:
        plan = generate_fix_plan([])
        assert not plan.has_fixes
        assert plan.fix_count == 0
        assert plan.to_script() == ""

    def test_statements_ordered_by_stage(
        self, orders_table: TableSchema, old_key: TableKey
    ) -> None:
        differences = [
            MissingKey(orders_table, orders_table.get_key("reference")),
            MissingColumn(orders_table, orders_table.get_column("reference")),
            MissingTable(TableSchema(name="tb_cart")),
            ExtraKey(orders_table, old_key),
        ]

        plan = generate_fix_plan(differences)

        assert [s.stage for s in plan.statements] == [
            MigrationStage.DROP_INDEXES,
            MigrationStage.CREATE_TABLES,
            MigrationStage.ADD_COLUMNS,
            MigrationStage.CREATE_INDEXES,
        ]

    def test_order_within_stage_is_kept(self, orders_table: TableSchema) -> None:
        differences = [
            MissingColumn(orders_table, orders_table.get_column("total_paid")),
            MissingColumn(orders_table, orders_table.get_column("reference")),
        ]
        plan = generate_fix_plan(differences)
        assert [s.differences[0] for s in plan.statements] == differences

    def test_same_statement_is_shared(self, orders_table: TableSchema) -> None:
        target = orders_table.get_column("reference")
        current = target.model_copy(update={"data_type": "varchar(8)", "nullable": True})
        differences = [
            DifferentDataType(orders_table, target, current),
            DifferentNullable(orders_table, target, current),
        ]

        plan = generate_fix_plan(differences)

        assert plan.fix_count == 1
        assert plan.statements[0].differences == differences
        assert plan.statements[0].sql.startswith("ALTER TABLE `tb_orders` MODIFY COLUMN")

    def test_destructive_skipped_by_default(self, orders_table: TableSchema) -> None:
        legacy = ColumnSchema(name="legacy", data_type="int(11)")
        differences = [
            ExtraTable(TableSchema(name="tb_legacy")),
            ExtraColumn(orders_table, legacy),
        ]

        plan = generate_fix_plan(differences)

        assert not plan.has_fixes
        assert [d.kind for d in plan.skipped] == ["ExtraColumn", "ExtraTable"]

    def test_destructive_allowed(self, orders_table: TableSchema) -> None:
        legacy = ColumnSchema(name="legacy", data_type="int(11)")
        differences = [
            ExtraTable(TableSchema(name="tb_legacy")),
            ExtraColumn(orders_table, legacy),
        ]

        plan = generate_fix_plan(differences, allow_destructive=True)

        assert plan.skipped == []
        assert plan.to_script() == (
            "ALTER TABLE `tb_orders` DROP COLUMN `legacy`;\n\nDROP TABLE `tb_legacy`;"
        )

    def test_ddl_error_stops_plan(self, orders_table: TableSchema) -> None:
        broken = MagicMock(spec=MissingTable)
        broken.stage = MigrationStage.CREATE_TABLES
        broken.destructive = False
        broken.kind = "MissingTable"
        broken.table_name = "tb_cart"
        broken.to_sql.side_effect = KeyError("id_cart")

        plan = generate_fix_plan(
            [MissingColumn(orders_table, orders_table.get_column("reference")), broken]
        )

        assert plan.error == "Cannot generate DDL for MissingTable on tb_cart: 'id_cart'"
        assert not plan.has_fixes


class TestAutoIncrementKeys:
    """AUTO_INCREMENT changes run in the same ALTER as the key covering the column."""

    def test_gaining_auto_increment_adds_key_in_same_statement(
        self, orders_table: TableSchema
    ) -> None:
        target = orders_table.get_column("id_order")
        current = target.model_copy(update={"nullable": True, "auto_increment": False})
        primary = MissingKey(orders_table, orders_table.get_key("PRIMARY"))
        unique = MissingKey(orders_table, orders_table.get_key("reference"))
        differences = [
            DifferentNullable(orders_table, target, current),
            DifferentAutoIncrement(orders_table, target, current),
            primary,
            unique,
        ]

        plan = generate_fix_plan(differences)

        assert plan.to_script() == (
            "ALTER TABLE `tb_orders` MODIFY COLUMN `id_order` int(11) unsigned NOT NULL"
            " AUTO_INCREMENT, ADD PRIMARY KEY (`id_order`);\n\n"
            "ALTER TABLE `tb_orders` ADD UNIQUE KEY `reference` (`reference`);"
        )
        assert plan.statements[0].stage is MigrationStage.MODIFY_COLUMNS
        assert plan.statements[0].differences == [*differences[:2], primary]
        assert plan.statements[1].differences == [unique]

    def test_losing_auto_increment_drops_key_in_same_statement(self) -> None:
        current_column = ColumnSchema(
            name="id_log", data_type="int(11)", nullable=False, auto_increment=True
        )
        target_column = current_column.model_copy(update={"auto_increment": False})
        table = TableSchema(name="tb_log", columns=[target_column])
        primary = TableKey(name="PRIMARY", key_type=KeyType.PRIMARY, columns=["id_log"])

        plan = generate_fix_plan([
            ExtraKey(table, primary),
            DifferentAutoIncrement(table, target_column, current_column),
        ])

        assert plan.fix_count == 1
        assert plan.statements[0].stage is MigrationStage.MODIFY_COLUMNS
        assert plan.statements[0].sql == (
            "ALTER TABLE `tb_log` MODIFY COLUMN `id_log` int(11) NOT NULL, DROP PRIMARY KEY"
        )

    def test_new_auto_increment_column_adds_key(self, orders_table: TableSchema) -> None:
        differences = [
            MissingKey(orders_table, orders_table.get_key("PRIMARY")),
            MissingColumn(orders_table, orders_table.get_column("id_order")),
        ]

        plan = generate_fix_plan(differences)

        assert plan.to_script() == (
            "ALTER TABLE `tb_orders` ADD COLUMN `id_order` int(11) unsigned NOT NULL"
            " AUTO_INCREMENT FIRST, ADD PRIMARY KEY (`id_order`);"
        )

    def test_keys_on_other_columns_keep_their_stage(
        self, orders_table: TableSchema, old_key: TableKey
    ) -> None:
        target = orders_table.get_column("id_order")
        current = target.model_copy(update={"auto_increment": False})

        plan = generate_fix_plan([
            DifferentAutoIncrement(orders_table, target, current),
            ExtraKey(orders_table, old_key),
        ])

        assert [s.stage for s in plan.statements] == [
            MigrationStage.DROP_INDEXES,
            MigrationStage.MODIFY_COLUMNS,
        ]
        assert plan.statements[1].sql.endswith("AUTO_INCREMENT")


class TestFixStatement:
    def test_to_sql_terminates(self) -> None:
        statement = FixStatement(stage=MigrationStage.DROP_TABLES, sql="DROP TABLE `t`")
        assert statement.to_sql() == "DROP TABLE `t`;"


class TestApplyFixes:
    """Executing a plan through a DatabaseClient."""

    @pytest.fixture
    def plan(self) -> FixPlan:
        return FixPlan(
            statements=[
                FixStatement(stage=MigrationStage.DROP_INDEXES, sql="ALTER TABLE `t` DROP KEY `a`"),
                FixStatement(stage=MigrationStage.CREATE_INDEXES, sql="ALTER TABLE `t` ADD KEY `b` (`b`)"),
            ]
        )

    async def test_dry_run_executes_nothing(self, plan: FixPlan) -> None:
        adapter = AsyncMock()
        result = await apply_fixes(adapter, plan)
        assert result.success
        adapter.execute.assert_not_called()

    async def test_requires_confirm(self, plan: FixPlan) -> None:
        adapter = AsyncMock()
        result = await apply_fixes(adapter, plan, dry_run=False)
        assert not result.success
        assert result.error == "Fix requires confirm=True"
        adapter.execute.assert_not_called()

    async def test_applies_in_order(self, plan: FixPlan) -> None:
        adapter = AsyncMock()
        result = await apply_fixes(adapter, plan, dry_run=False, confirm=True)

        assert result == FixResult(success=True, statements_applied=2)
        assert [c.args[0] for c in adapter.execute.call_args_list] == [
            "ALTER TABLE `t` DROP KEY `a`",
            "ALTER TABLE `t` ADD KEY `b` (`b`)",
        ]

    async def test_stops_at_first_failure(self, plan: FixPlan) -> None:
        adapter = AsyncMock()
        adapter.execute.side_effect = [None, Exception("Duplicate key name 'b'")]

        result = await apply_fixes(adapter, plan, dry_run=False, confirm=True)

        assert not result.success
        assert result.statements_applied == 1
        assert result.failed_statement == "ALTER TABLE `t` ADD KEY `b` (`b`)"
        assert result.error == "Failed to apply fixes: Duplicate key name 'b'"

    async def test_adapter_without_ddl(self, plan: FixPlan) -> None:
        adapter = AsyncMock()
        adapter.execute.side_effect = NotImplementedError

        with pytest.raises(RuntimeError, match="DDL operations not supported"):
            await apply_fixes(adapter, plan, dry_run=False, confirm=True)

    async def test_nothing_to_fix(self) -> None:
        adapter = AsyncMock()
        result = await apply_fixes(adapter, FixPlan(), dry_run=False, confirm=True)
        assert result.success
        assert result.statements_applied == 0

    async def test_plan_error_is_reported(self) -> None:
        adapter = AsyncMock()
        result = await apply_fixes(adapter, FixPlan(error="boom"), dry_run=False, confirm=True)
        assert not result.success
        assert result.error == "boom"
        adapter.execute.assert_not_called()
