"""Schema fix module -- turn differences into a migration script.

Orders the DDL statements of a list of differences into safe migration
stages, optionally skips destructive statements, and applies the result via
the ``DatabaseClient.execute()`` Protocol method.

Usage:
    from db_reconcile.schema.comparator import DatabaseSchemaComparator
    from db_reconcile.schema.fix import apply_fixes, generate_fix_plan

    # 1. Compare
    differences = DatabaseSchemaComparator().get_differences(current, target)

    # 2. Generate plan
    plan = generate_fix_plan(differences)
    print(plan.to_script())

    # 3. Apply fixes
    fix_result = await apply_fixes(adapter, plan, dry_run=False, confirm=True)
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel

from db_reconcile.schema.differences import (
    AlterTableDifference,
    ColumnDifference,
    DifferentKey,
    ExtraKey,
    MigrationStage,
    MissingColumn,
    MissingKey,
    SchemaDifference,
)

if TYPE_CHECKING:
    from db_reconcile.adapters.base import DatabaseClient

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Fix data classes
# ------------------------------------------------------------------


@dataclass
class FixStatement:
    """One DDL statement of a fix plan and the differences it resolves.

    Example:
        stmt = FixStatement(stage=MigrationStage.ADD_COLUMNS, sql="ALTER TABLE ...")
        stmt.to_sql()
        # 'ALTER TABLE ...;'
    """

    stage: MigrationStage
    sql: str
    differences: list[SchemaDifference] = field(default_factory=list)

    def to_sql(self) -> str:
        """Return the statement terminated with a semicolon."""
        return f"{self.sql};"


@dataclass
class FixPlan:
    """Plan for fixing schema drift.

    Attributes:
        statements: DDL statements in execution order.
        skipped: Destructive differences left out of the plan.
        error: Error message if plan generation failed.
    """

    statements: list[FixStatement] = field(default_factory=list)
    skipped: list[SchemaDifference] = field(default_factory=list)
    error: str | None = None

    @property
    def has_fixes(self) -> bool:
        """True if there are any statements to apply."""
        return bool(self.statements)

    @property
    def fix_count(self) -> int:
        """Total number of statements."""
        return len(self.statements)

    def to_script(self) -> str:
        """Render the plan as a SQL script, one statement per paragraph."""
        return "\n\n".join(statement.to_sql() for statement in self.statements)


class FixResult(BaseModel):
    """Result of applying schema fixes.

    Attributes:
        success: True if all statements were applied successfully.
        statements_applied: Number of statements executed.
        failed_statement: Statement that failed, if any.
        error: Error message if fix failed.
    """

    success: bool = False
    statements_applied: int = 0
    failed_statement: str | None = None
    error: str | None = None


# ------------------------------------------------------------------
# Plan generation
# ------------------------------------------------------------------


def generate_fix_plan(
    differences: list[SchemaDifference],
    allow_destructive: bool = False,
) -> FixPlan:
    """Generate a plan to fix schema drift.

    Pure sync logic. Statements are grouped by ``MigrationStage`` (keys are
    dropped before columns, tables are created before columns are added, and
    so on); within a stage the comparator's order is kept. Differences that
    render the same statement, such as several mismatches on one column
    that all resolve to one ``MODIFY COLUMN``, share one statement.

    MySQL only accepts an AUTO_INCREMENT column that is part of a key. When
    a column gains or loses AUTO_INCREMENT, key changes covering that column
    are folded into the column's own ``ALTER TABLE`` instead of running in
    their own stage.

    Args:
        differences: Output of ``DatabaseSchemaComparator.get_differences()``.
        allow_destructive: Include statements that drop tables or columns.
            When False those differences are listed in ``FixPlan.skipped``.

    Returns:
        ``FixPlan`` with ordered statements.

    Example:
        plan = generate_fix_plan(differences)
        if plan.has_fixes:
            result = await apply_fixes(adapter, plan, dry_run=False, confirm=True)
    """
    plan = FixPlan()
    by_sql: dict[str, FixStatement] = {}
    folded = _fold_auto_increment_keys(differences)
    folded_ids = {id(key_diff) for key_diffs in folded.values() for key_diff in key_diffs}

    ordered = sorted(
        enumerate(differences), key=lambda item: (item[1].stage, item[0])
    )
    for _, difference in ordered:
        if difference.destructive and not allow_destructive:
            plan.skipped.append(difference)
            continue
        if id(difference) in folded_ids:
            continue

        companions: list[AlterTableDifference] = []
        try:
            sql = difference.to_sql()
            statement = by_sql.get(sql)
            if statement is None:
                companions = folded.get(_auto_increment_column(difference), [])
                statement = FixStatement(
                    stage=difference.stage,
                    sql=", ".join([sql, *(key_diff.alter_clause() for key_diff in companions)]),
                )
                by_sql[sql] = statement
                plan.statements.append(statement)
        except (ValueError, KeyError) as e:
            plan.error = f"Cannot generate DDL for {difference.kind} on {difference.table_name}: {e}"
            plan.statements = []
            return plan

        statement.differences.append(difference)
        statement.differences.extend(companions)

    logger.debug(
        f"Fix plan: {plan.fix_count} statements, {len(plan.skipped)} skipped"
    )
    return plan


def _auto_increment_column(difference: SchemaDifference) -> tuple[str, str] | None:
    """``(table, column)`` whose AUTO_INCREMENT flag the difference changes."""
    if isinstance(difference, MissingColumn) and difference.column.auto_increment:
        return difference.table_name, difference.column.name
    if isinstance(difference, ColumnDifference) and (
        difference.column.auto_increment != difference.current_column.auto_increment
    ):
        return difference.table_name, difference.column.name
    return None


def _fold_auto_increment_keys(
    differences: list[SchemaDifference],
) -> dict[tuple[str, str], list[AlterTableDifference]]:
    """Map each AUTO_INCREMENT column change to the key changes covering it."""
    columns = list(dict.fromkeys(
        column for column in map(_auto_increment_column, differences) if column is not None
    ))
    folded: dict[tuple[str, str], list[AlterTableDifference]] = {}
    if not columns:
        return folded

    for difference in differences:
        if not isinstance(difference, (MissingKey, ExtraKey, DifferentKey)):
            continue
        key_columns = set(difference.key.columns)
        if isinstance(difference, DifferentKey):
            key_columns.update(difference.current_key.columns)
        for table, column in columns:
            if table == difference.table_name and column in key_columns:
                folded.setdefault((table, column), []).append(difference)
                break
    return folded


# ------------------------------------------------------------------
# Fix application
# ------------------------------------------------------------------


async def apply_fixes(
    adapter: "DatabaseClient",
    plan: FixPlan,
    dry_run: bool = True,
    confirm: bool = False,
) -> FixResult:
    """Apply a fix plan to a database.

    Executes DDL statements via the ``adapter.execute()`` Protocol method,
    in plan order, stopping at the first failure. Nothing is retried or
    rolled back; DDL is not transactional in MySQL.

    Args:
        adapter: Database adapter implementing ``DatabaseClient`` Protocol.
        plan: Fix plan from ``generate_fix_plan()``.
        dry_run: If True, only report what would be done without executing.
        confirm: Must be True to actually apply fixes (safety guard).

    Returns:
        ``FixResult`` with outcome.

    Raises:
        RuntimeError: If the adapter does not support DDL operations
            (raises ``NotImplementedError`` on ``execute()``).
    """
    result = FixResult()

    if plan.error:
        result.error = plan.error
        return result

    if not plan.has_fixes:
        result.success = True
        return result

    # Dry run just returns the plan info
    if dry_run:
        result.success = True
        return result

    # Safety check
    if not confirm:
        result.error = "Fix requires confirm=True"
        return result

    for statement in plan.statements:
        try:
            await adapter.execute(statement.sql)
        except NotImplementedError:
            raise RuntimeError("DDL operations not supported for this adapter type")
        except Exception as e:
            logger.warning(f"Schema fix failed on: {statement.sql}: {e}")
            result.failed_statement = statement.sql
            result.error = f"Failed to apply fixes: {e}"
            return result
        result.statements_applied += 1

    result.success = True
    return result
