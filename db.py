import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

import aiosqlite

from models import CategoryTotal, Expense
from utils.logging import logger

T = TypeVar("T")

EXPENSE_COLUMNS = "id, amount, category, date, note"


class PersistenceError(Exception):
    """Raised when a store operation fails inside SQLite."""

    def __init__(self, message: str = None, original_error: Exception = None):
        if message is None:
            message = "A database error occurred"
        super().__init__(message)
        self.original_error = original_error

    @classmethod
    def from_exception(cls, operation: str, error: Exception):
        """Create a persistence error from the underlying database exception.

        Args:
            operation: Short description of what was being done
            error: The original exception
        """
        return cls(f"Could not {operation}: {error!s}", error)


class ChangeTracker:
    """Version counter that wakes live queries whenever the expenses table changes."""

    def __init__(self):
        self._version = 0
        self._condition = asyncio.Condition()

    @property
    def version(self) -> int:
        return self._version

    async def notify_changed(self) -> None:
        async with self._condition:
            self._version += 1
            self._condition.notify_all()

    async def wait_for_change(self, seen_version: int) -> None:
        """Block until the version differs from the one the caller last saw."""
        async with self._condition:
            await self._condition.wait_for(lambda: self._version != seen_version)


class Database:
    """Handles expense storage and live queries on a local SQLite file."""

    def __init__(self, db_path: str = "expenses.db", pool_size: int = 3):
        """Initialize database settings. Connections are opened lazily."""
        self.db_path = db_path
        self._connection_pool = []  # Simple connection pool
        self._pool_size = pool_size  # Maximum number of idle connections kept
        self._pool_lock = asyncio.Lock()
        self._closed = False
        self._changes = ChangeTracker()

    async def get_connection(self) -> aiosqlite.Connection:
        """Get a database connection from the pool or create a new one.

        Raises:
            PersistenceError: If the database has been closed
        """
        async with self._pool_lock:
            if self._closed:
                logger.error(f"Connection requested after closing {self.db_path}")
                raise PersistenceError("Database is closed")
            if self._connection_pool:
                connection = self._connection_pool.pop()
                logger.debug("Reusing connection from pool")
                return connection

        logger.debug(f"Opening new async database connection to {self.db_path}")
        connection = await aiosqlite.connect(self.db_path)
        await connection.execute("PRAGMA journal_mode = WAL")
        await connection.execute("PRAGMA synchronous = NORMAL")
        await connection.execute("PRAGMA temp_store = MEMORY")
        connection.row_factory = aiosqlite.Row
        return connection

    async def release_connection(self, connection: aiosqlite.Connection) -> None:
        """Release connection back to the pool or close it."""
        async with self._pool_lock:
            if not self._closed and len(self._connection_pool) < self._pool_size:
                self._connection_pool.append(connection)
                logger.debug("Connection released back to pool")
                return

        await connection.close()
        logger.debug("Connection pool full or closed, closed connection")

    async def close(self) -> None:
        """Close all database connections in the pool."""
        logger.info("Closing all database connections")
        async with self._pool_lock:
            self._closed = True
            for connection in self._connection_pool:
                try:
                    await connection.close()
                except aiosqlite.Error as e:
                    logger.error(f"Error closing pooled connection: {e}")
            self._connection_pool.clear()
        logger.info("All database connections closed")

    @asynccontextmanager
    async def connection(self):
        """Async context manager for read-only cursors."""
        conn = await self.get_connection()
        try:
            async with conn.cursor() as cursor:
                yield cursor
        finally:
            await self.release_connection(conn)

    @asynccontextmanager
    async def transaction(self):
        """Async context manager for database transactions."""
        conn = await self.get_connection()
        try:
            await conn.execute("BEGIN")
            try:
                async with conn.cursor() as cursor:
                    yield cursor
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise
        finally:
            await self.release_connection(conn)

    async def create_tables(self) -> None:
        """Create the expenses table and its indexes if they don't exist."""
        logger.info("Initializing database tables")
        try:
            async with self.transaction() as cursor:
                await cursor.execute("""
                    CREATE TABLE IF NOT EXISTS expenses (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        amount REAL NOT NULL,
                        category TEXT NOT NULL,
                        date INTEGER NOT NULL,
                        note TEXT
                    );
                """)
                await cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date DESC, id DESC);"
                )
                await cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_expenses_category ON expenses(category);"
                )
            logger.info("Database tables initialized successfully")
        except aiosqlite.Error as e:
            logger.error(f"Error creating database tables: {e}")
            raise PersistenceError.from_exception("create tables", e) from e

    async def insert_expense(self, expense: Expense) -> int:
        """Insert an expense, replacing any row with the same id.

        An id of 0 lets SQLite assign the next one.

        Returns:
            The row id of the stored expense
        """
        logger.info(f"Inserting expense: {expense.amount} in {expense.category}")
        try:
            async with self.transaction() as cursor:
                await cursor.execute(
                    f"INSERT OR REPLACE INTO expenses ({EXPENSE_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                    (
                        expense.id or None,
                        expense.amount,
                        expense.category,
                        expense.date,
                        expense.note,
                    ),
                )
                expense_id = cursor.lastrowid
        except aiosqlite.Error as e:
            logger.error(f"Error inserting expense: {e}")
            raise PersistenceError.from_exception("insert expense", e) from e

        logger.info(f"Expense {expense_id} stored successfully")
        await self._changes.notify_changed()
        return expense_id

    async def delete_expense(self, expense: Expense) -> int:
        """Delete the row matching every field of the given expense.

        A copy whose fields no longer match the stored row deletes nothing.

        Returns:
            Number of rows deleted
        """
        logger.info(f"Removing expense with ID {expense.id}")
        try:
            async with self.transaction() as cursor:
                await cursor.execute(
                    """
                    DELETE FROM expenses
                    WHERE id = ? AND amount = ? AND category = ? AND date = ? AND note IS ?
                """,
                    (expense.id, expense.amount, expense.category, expense.date, expense.note),
                )
                deleted = cursor.rowcount
        except aiosqlite.Error as e:
            logger.error(f"Error removing expense: {e}")
            raise PersistenceError.from_exception("delete expense", e) from e

        if deleted > 0:
            logger.info("Expense removed successfully")
            await self._changes.notify_changed()
        else:
            logger.warning(f"No stored expense matched ID {expense.id}")
        return deleted

    async def get_expense_by_id(self, expense_id: int) -> Expense | None:
        """Get a single expense, or None if there is no row with this id."""
        logger.debug(f"Fetching expense ID {expense_id}")
        try:
            async with self.connection() as cursor:
                await cursor.execute(
                    f"SELECT {EXPENSE_COLUMNS} FROM expenses WHERE id = ?", (expense_id,)
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(f"Error fetching expense {expense_id}: {e}")
            raise PersistenceError.from_exception("fetch expense", e) from e

        if row is None:
            logger.debug(f"Expense ID {expense_id} not found")
            return None
        return Expense.from_row(tuple(row))

    async def _fetch_expenses(self, query: str, params: tuple = ()) -> list[Expense]:
        try:
            async with self.connection() as cursor:
                await cursor.execute(query, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.error(f"Error fetching expenses: {e}")
            raise PersistenceError.from_exception("fetch expenses", e) from e
        expenses = [Expense.from_row(tuple(row)) for row in rows]
        logger.debug(f"Retrieved {len(expenses)} expenses")
        return expenses

    async def _fetch_category_totals(self) -> list[CategoryTotal]:
        try:
            async with self.connection() as cursor:
                await cursor.execute("""
                    SELECT category, SUM(amount) AS total
                    FROM expenses
                    GROUP BY category
                    ORDER BY category
                """)
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.error(f"Error fetching category totals: {e}")
            raise PersistenceError.from_exception("fetch category totals", e) from e
        return [CategoryTotal(category=row[0], total=row[1]) for row in rows]

    async def _fetch_total(self, start: int, end: int) -> float | None:
        try:
            async with self.connection() as cursor:
                await cursor.execute(
                    "SELECT SUM(amount) FROM expenses WHERE date >= ? AND date < ?",
                    (start, end),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(f"Error fetching total for range {start}-{end}: {e}")
            raise PersistenceError.from_exception("fetch total", e) from e
        return row[0] if row else None

    async def _observe(self, name: str, fetch: Callable[[], Awaitable[T]]) -> AsyncIterator[T]:
        """Run a query now and again after every change to the expenses table.

        The change version is read before querying, so a write that lands while
        the query runs always produces one more delivery.
        """
        logger.debug(f"Opening live query '{name}'")
        try:
            while True:
                seen_version = self._changes.version
                yield await fetch()
                await self._changes.wait_for_change(seen_version)
        finally:
            logger.debug(f"Closed live query '{name}'")

    def stream_all_expenses(self) -> AsyncIterator[list[Expense]]:
        """Live list of every expense, newest first."""
        return self._observe(
            "all_expenses",
            lambda: self._fetch_expenses(
                f"SELECT {EXPENSE_COLUMNS} FROM expenses ORDER BY date DESC, id DESC"
            ),
        )

    def stream_expenses_by_date_range(self, start: int, end: int) -> AsyncIterator[list[Expense]]:
        """Live list of expenses with start <= date < end, newest first."""
        return self._observe(
            f"expenses_between_{start}_{end}",
            lambda: self._fetch_expenses(
                f"""
                SELECT {EXPENSE_COLUMNS}
                FROM expenses
                WHERE date >= ? AND date < ?
                ORDER BY date DESC, id DESC
            """,
                (start, end),
            ),
        )

    def stream_category_totals(self) -> AsyncIterator[list[CategoryTotal]]:
        """Live per-category sums, one entry per stored category."""
        return self._observe("category_totals", self._fetch_category_totals)

    def stream_monthly_total(self, start: int, end: int) -> AsyncIterator[float | None]:
        """Live sum of amounts in [start, end), None when no rows match."""
        return self._observe(
            f"total_between_{start}_{end}", lambda: self._fetch_total(start, end)
        )
