"""Error taxonomy for the task store and driver-error classification."""
from contextlib import contextmanager
from typing import Iterator
import asyncio

import asyncpg


class TaskStoreError(Exception):
    """Base class for every failure of a task store operation."""

    def __init__(self, message: str, operation: str = "database") -> None:
        super().__init__(message)
        self.operation = operation


class ConnectivityError(TaskStoreError):
    """The database cannot be reached or refused the credentials."""


class PoolExhausted(TaskStoreError):
    """No connection became available within the acquisition timeout."""


class QueryError(TaskStoreError):
    """The database rejected or timed out the statement."""


CONNECTIVITY_ERRORS = (
    OSError,
    asyncpg.PostgresConnectionError,
    asyncpg.ConnectionFailureError,
    asyncpg.InvalidAuthorizationSpecificationError,
    asyncpg.InvalidCatalogNameError,
    asyncpg.CannotConnectNowError,
    asyncpg.TooManyConnectionsError,
    asyncpg.ConnectionDoesNotExistError,
)


def classify_error(exc: BaseException, operation: str) -> TaskStoreError | None:
    """Map a driver or OS exception to the task store taxonomy.

    Returns None for exceptions that are not database failures.
    """
    if isinstance(exc, TaskStoreError):
        return exc
    # Statement timeouts surface as asyncio.TimeoutError from asyncpg.
    if isinstance(exc, asyncio.TimeoutError):
        return QueryError(f"{operation} timed out", operation)
    if isinstance(exc, CONNECTIVITY_ERRORS):
        return ConnectivityError(f"{operation}: {exc}", operation)
    if isinstance(exc, (asyncpg.PostgresError, asyncpg.InterfaceError)):
        return QueryError(f"{operation}: {exc}", operation)
    return None


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise database failures inside the block as TaskStoreError."""
    try:
        yield
    except TaskStoreError:
        raise
    except Exception as e:
        error = classify_error(e, operation)
        if error is None:
            raise
        raise error from e
