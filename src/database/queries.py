"""Database queries for the tasks table."""
from typing import Optional

from src.database.connection import TaskPool
from src.database.errors import translate_errors


async def create_task(
    pool: TaskPool,
    title: str,
    description: Optional[str] = None,
) -> int:
    """Insert a task. Returns the id assigned by the database."""
    with translate_errors("create_task"):
        async with pool.acquire("create_task") as conn:
            task_id = await conn.fetchval(
                """
                INSERT INTO tasks (title, description)
                VALUES ($1, $2)
                RETURNING id
                """,
                title, description,
            )
    return task_id


async def list_tasks(pool: TaskPool) -> list[dict]:
    """Get every task, oldest first."""
    with translate_errors("list_tasks"):
        async with pool.acquire("list_tasks") as conn:
            rows = await conn.fetch(
                "SELECT id, title, description FROM tasks ORDER BY id"
            )
    return [dict(row) for row in rows]


async def delete_task(pool: TaskPool, task_id: str | int) -> None:
    """Delete a task by id. Deleting a missing id is not an error.

    The id comes straight from the URL; one that is not an integer
    cannot match the SERIAL column, so nothing is deleted.
    """
    try:
        task_id = int(task_id)
    except ValueError:
        return
    with translate_errors("delete_task"):
        async with pool.acquire("delete_task") as conn:
            await conn.execute("DELETE FROM tasks WHERE id = $1", task_id)
