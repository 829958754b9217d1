"""Pytest configuration and fixtures."""
import pytest
import asyncio
import os
from unittest.mock import AsyncMock, patch


# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"
os.environ["SENTRY_DSN"] = ""

from httpx import AsyncClient, ASGITransport  # noqa: E402

from src.config import Settings  # noqa: E402
from src.database.connection import TaskPool  # noqa: E402


class FakeTable:
    """In-memory stand-in for the tasks table."""

    def __init__(self):
        self.rows = {}
        self.next_id = 1
        self.fail_next = None  # Exception raised by the next statement

    def check_failure(self):
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error


class FakeConnection:
    """Implements the slice of asyncpg.Connection used by the queries."""

    def __init__(self, table: FakeTable, number: int):
        self.table = table
        self.number = number
        self.statements = []

    async def fetchval(self, query, *args):
        self.statements.append(query)
        await asyncio.sleep(0)
        self.table.check_failure()
        if "SELECT 1" in query:
            return 1
        if query.strip().upper().startswith("INSERT"):
            title, description = args
            task_id = self.table.next_id
            self.table.next_id += 1
            self.table.rows[task_id] = {"id": task_id, "title": title, "description": description}
            return task_id
        raise AssertionError(f"Unexpected fetchval: {query}")

    async def fetch(self, query, *args):
        self.statements.append(query)
        await asyncio.sleep(0)
        self.table.check_failure()
        return [dict(row) for _, row in sorted(self.table.rows.items())]

    async def execute(self, query, *args):
        self.statements.append(query)
        await asyncio.sleep(0)
        self.table.check_failure()
        removed = self.table.rows.pop(args[0], None)
        return f"DELETE {1 if removed else 0}"


class FakeDriverPool:
    """Bounded asyncpg.Pool double handing out FakeConnections."""

    def __init__(self, table: FakeTable, max_size: int):
        self.connections = [FakeConnection(table, n) for n in range(max_size)]
        self.in_use = set()
        self.closed = False
        self._queue = asyncio.Queue()
        for conn in self.connections:
            self._queue.put_nowait(conn)

    async def acquire(self, timeout=None):
        conn = await asyncio.wait_for(self._queue.get(), timeout)
        assert conn.number not in self.in_use, "connection handed out twice"
        self.in_use.add(conn.number)
        return conn

    async def release(self, conn):
        self.in_use.discard(conn.number)
        self._queue.put_nowait(conn)

    async def close(self):
        # asyncpg.Pool.close() waits for borrowed connections to come back.
        while self.in_use:
            await asyncio.sleep(0.005)
        self.closed = True


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def test_settings():
    """Small pool with a short wait ceiling so exhaustion tests stay fast."""
    return Settings(
        _env_file=None,
        db_host="db.test",
        db_pool_max_size=2,
        db_acquire_timeout=0.2,
        db_command_timeout=1.0,
        db_probe_timeout=0.1,
    )


@pytest.fixture
def table():
    return FakeTable()


@pytest.fixture
def driver_pool(table, test_settings):
    return FakeDriverPool(table, test_settings.db_pool_max_size)


@pytest.fixture
async def task_pool(test_settings, driver_pool):
    """Initialized TaskPool running on the in-memory driver."""
    with patch(
        "src.database.connection.asyncpg.create_pool",
        AsyncMock(return_value=driver_pool),
    ):
        pool = TaskPool(test_settings)
        await pool.init()
    yield pool
    await pool.shutdown()


@pytest.fixture
async def client(task_pool):
    """HTTP client for the app with the fake-backed pool injected."""
    from src.api.main import app, get_task_pool

    app.dependency_overrides[get_task_pool] = lambda: task_pool
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
