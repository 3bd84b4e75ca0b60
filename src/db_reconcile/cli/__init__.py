"""CLI module for schema drift detection and repair.

Compares a live database (or a schema dump) against a versioned schema
file, lists the differences, and renders or applies the DDL that fixes them.

Usage:
    db-reconcile profiles
    DB_PROFILE=local db-reconcile diff
    db-reconcile diff --profile local --schema-file schema.sql --ignore-table guest
    db-reconcile diff --current-file dump.sql --schema-file schema.sql
    db-reconcile fix --profile local
    db-reconcile fix --profile local --allow-destructive --confirm

Commands:
    profiles  - List available profiles
    diff      - Show schema differences
    fix       - Print the remediation script, or apply it with --confirm
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.table import Table

from db_reconcile.config.loader import load_db_config
from db_reconcile.config.models import DatabaseConfig
from db_reconcile.factory import (
    ComparisonResult,
    ProfileNotFoundError,
    get_active_profile,
    get_adapter,
    load_current_schema,
)
from db_reconcile.schema.charset import CharsetCache
from db_reconcile.schema.comparator import DatabaseSchemaComparator
from db_reconcile.schema.errors import SchemaParseError
from db_reconcile.schema.fix import apply_fixes, generate_fix_plan
from db_reconcile.schema.parser import load_schema_file

console = Console()


# ============================================================================
# Comparison (shared by diff and fix)
# ============================================================================


def _load_config() -> DatabaseConfig | None:
    """Load db.toml from the working directory, or None if there is none."""
    try:
        return load_db_config()
    except FileNotFoundError:
        return None


async def _compare(args: argparse.Namespace, config: DatabaseConfig | None) -> ComparisonResult:
    """Build both snapshots and compare them.

    The current snapshot comes from ``--current-file`` when given, otherwise
    from introspecting the selected profile. Command line options override
    the ``[schema]`` settings of db.toml.
    """
    env_prefix = getattr(args, "env_prefix", "")
    profile_name: str | None = None
    table_prefix = args.table_prefix

    if args.current_file:
        try:
            current = load_schema_file(args.current_file)
        except (FileNotFoundError, SchemaParseError) as e:
            return ComparisonResult(success=False, error=str(e))
        # No server to ask; every explicit collation is rendered
        charsets = CharsetCache()
    else:
        if config is None:
            return ComparisonResult(
                success=False,
                error="db.toml not found. Create it or pass --current-file.",
            )
        try:
            profile_name, profile = get_active_profile(args.profile, env_prefix, config)
        except ProfileNotFoundError as e:
            return ComparisonResult(success=False, error=str(e))
        except KeyError as e:
            return ComparisonResult(success=False, profile_name=args.profile, error=e.args[0])

        if table_prefix is None:
            table_prefix = profile.table_prefix

        console.print(
            f"Introspecting profile: [bold cyan]{profile_name}[/bold cyan]", style="dim"
        )
        try:
            current, charsets = await load_current_schema(profile_name, env_prefix, config)
        except Exception as e:
            return ComparisonResult(
                success=False,
                profile_name=profile_name,
                error=f"Failed to connect to database: {e}",
            )

    schema_file = args.schema_file or (config.schema_file if config else "schema.sql")
    try:
        target = load_schema_file(schema_file, charsets, table_prefix or "")
    except (FileNotFoundError, SchemaParseError) as e:
        return ComparisonResult(success=False, profile_name=profile_name, error=str(e))

    if args.ignore_table:
        ignore_tables = args.ignore_table
    else:
        ignore_tables = config.ignore_tables if config else []
    report_extra_tables = (config.report_extra_tables if config else True) and not args.no_extra_tables

    comparator = DatabaseSchemaComparator(
        ignore_tables=ignore_tables,
        table_prefix=table_prefix or "",
        report_extra_tables=report_extra_tables,
        charsets=charsets,
    )
    return ComparisonResult(
        success=True,
        profile_name=profile_name,
        differences=comparator.get_differences(current, target),
        charsets=charsets,
    )


def _print_differences(result: ComparisonResult) -> None:
    table = Table(title="Schema Differences", show_header=True, header_style="bold")
    table.add_column("Table", style="dim")
    table.add_column("Difference")
    table.add_column("Description")

    for diff in result.differences:
        style = "yellow" if diff.destructive else ""
        table.add_row(
            diff.table_name,
            f"[{style}]{diff.kind}[/{style}]" if style else diff.kind,
            diff.describe(),
        )
    console.print(table)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_diff(args: argparse.Namespace) -> int:
    """Async implementation for diff command.

    Returns:
        0 when the schemas match, 1 on differences or failure.
    """
    try:
        config = _load_config()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    result = await _compare(args, config)
    if not result.success:
        console.print(f"\n[bold red]x[/bold red] {result.error}")
        return 1

    if result.in_sync:
        console.print()
        console.print("[bold green]v[/bold green] Schema is in sync")
        return 0

    console.print()
    _print_differences(result)
    console.print(f"\n[bold]{len(result.differences)}[/bold] differences found")
    return 1


async def _async_fix(args: argparse.Namespace) -> int:
    """Async implementation for fix command.

    Prints the remediation script. With ``--confirm`` the script is
    applied to the profile's database.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")

    try:
        config = _load_config()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if args.confirm and args.current_file:
        console.print(
            "[red]Error: --confirm needs a database profile, not --current-file.[/red]"
        )
        return 1

    result = await _compare(args, config)
    if not result.success:
        console.print(f"\n[bold red]x[/bold red] {result.error}")
        return 1

    plan = generate_fix_plan(result.differences, allow_destructive=args.allow_destructive)
    if plan.error:
        console.print(f"\n[red]Error: {plan.error}[/red]")
        return 1

    if plan.skipped:
        console.print()
        console.print("[yellow]Skipped destructive changes:[/yellow]")
        for diff in plan.skipped:
            console.print(f"  - {diff.describe()}", markup=False)
        console.print(
            "[dim]Add[/dim] [cyan]--allow-destructive[/cyan] [dim]to include them.[/dim]"
        )

    if not plan.has_fixes:
        console.print()
        console.print("[bold green]v[/bold green] Nothing to fix")
        return 0

    console.print()
    console.print(f"[bold]Remediation script ({plan.fix_count} statements):[/bold]")
    console.print(plan.to_script(), markup=False, highlight=False)

    if not args.confirm:
        console.print()
        console.print("[dim]To apply fixes, add[/dim] [cyan]--confirm[/cyan] [dim]flag.[/dim]")
        return 0

    console.print()
    console.print("[bold]Applying fixes...[/bold]")

    try:
        adapter = await get_adapter(
            profile_name=result.profile_name, env_prefix=env_prefix, config=config
        )
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] Connection failed: {e}")
        return 1

    try:
        fix_result = await apply_fixes(adapter, plan, dry_run=False, confirm=True)
    finally:
        await adapter.close()

    if fix_result.success:
        console.print()
        console.print("[bold green]v Schema fix complete![/bold green]")
        console.print(f"  Statements applied: {fix_result.statements_applied}")
        return 0
    else:
        console.print(f"\n[bold red]x[/bold red] Fix failed: {fix_result.error}")
        if fix_result.failed_statement:
            console.print(f"  Statement: {fix_result.failed_statement}", markup=False)
        console.print(f"  Statements applied before failure: {fix_result.statements_applied}")
        return 1


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml not found or invalid.
    """
    try:
        config = load_db_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Table prefix")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.table_prefix, profile.description or "")

    console.print(table)
    console.print(f"\n[dim]Schema file:[/dim] {config.schema_file}")
    if config.ignore_tables:
        console.print(f"[dim]Ignored tables:[/dim] {', '.join(config.ignore_tables)}")
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    """Show schema differences.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_diff(args))


def cmd_fix(args: argparse.Namespace) -> int:
    """Render or apply the remediation script.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_fix(args))


# ============================================================================
# Main entry point
# ============================================================================


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--schema-file",
        help="SQL file with the target CREATE TABLE statements (default: [schema] file)",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--profile",
        help="Profile to introspect (default: {env-prefix}DB_PROFILE)",
    )
    source.add_argument(
        "--current-file",
        help="Compare a schema dump instead of a live database",
    )
    parser.add_argument(
        "--ignore-table",
        action="append",
        default=[],
        metavar="TABLE",
        help="Table to leave out, without prefix (repeatable; default: [schema] ignore_tables)",
    )
    parser.add_argument(
        "--table-prefix",
        default=None,
        help="Deployment table prefix (default: the profile's table_prefix)",
    )
    parser.add_argument(
        "--no-extra-tables",
        action="store_true",
        help="Do not report tables missing from the schema file",
    )


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-reconcile",
        description="MySQL schema drift detection and repair",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # diff command
    p_diff = subparsers.add_parser("diff", help="Show schema differences")
    _add_source_arguments(p_diff)
    p_diff.set_defaults(func=cmd_diff)

    # fix command
    p_fix = subparsers.add_parser(
        "fix",
        help="Print the remediation script, or apply it with --confirm",
    )
    _add_source_arguments(p_fix)
    p_fix.add_argument(
        "--allow-destructive",
        action="store_true",
        help="Include DROP TABLE and DROP COLUMN statements",
    )
    p_fix.add_argument(
        "--confirm",
        action="store_true",
        help="Apply fixes",
    )
    p_fix.set_defaults(func=cmd_fix)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
