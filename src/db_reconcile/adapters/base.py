"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that DDL executors must implement.
All methods are ``async def`` -- the library is async-first.

Usage:
    from db_reconcile.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        await client.execute("ALTER TABLE `orders` ADD KEY `customer` (`customer_id`)")
        await client.close()
"""

from typing import Protocol


class DatabaseClient(Protocol):
    """Database client interface used by ``apply_fixes()``.

    The reconciler only needs to run DDL statements, so the interface is
    deliberately small. Test doubles need nothing beyond these two methods.
    """

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (DDL or other non-query operations).

        Not all clients support DDL -- those that don't should raise
        ``NotImplementedError``.

        Args:
            sql: Raw SQL statement to execute.
            params: Optional dict of named parameters for the SQL statement.

        Raises:
            NotImplementedError: If the client does not support DDL.

        Example:
            await client.execute(
                "ALTER TABLE `users` ADD COLUMN `email` varchar(255) NOT NULL"
            )
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...
