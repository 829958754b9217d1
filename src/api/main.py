"""
Task Tracker API - Main Entry Point

A FastAPI application exposing a small task list backed by PostgreSQL:
- POST   /tasks       create a task
- GET    /tasks       list every task
- DELETE /tasks/{id}  delete a task

All endpoints are defined in this single file for easy understanding.
"""
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from contextlib import asynccontextmanager
import logging

# Import database
from src.database.connection import TaskPool
from src.database.errors import TaskStoreError
from src.database import queries
from src.config import get_settings

# Import Sentry
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

settings = get_settings()

# Configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

PORT = 3001


# ============================================================================
# SENTRY ERROR MONITORING
# ============================================================================

if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[FastApiIntegration()],
        traces_sample_rate=1.0,
        environment=settings.environment,
    )
    logger.info("Sentry error monitoring enabled")
else:
    logger.info("Sentry error monitoring disabled (set SENTRY_DSN to enable)")


# ============================================================================
# LIFESPAN MANAGEMENT - Startup and Shutdown
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Runs on startup and shutdown.
    """
    # STARTUP: Initialize database pool (an unreachable database is not fatal)
    logger.info("Starting up...")
    app.state.pool = TaskPool(settings)
    await app.state.pool.init()

    yield  # Application runs here

    # SHUTDOWN: Close connections
    logger.info("Shutting down...")
    await app.state.pool.shutdown()
    logger.info("Connections closed")


def get_task_pool(request: Request) -> TaskPool:
    """Dependency returning the pool created by the lifespan."""
    return request.app.state.pool


def error_response(message: str) -> JSONResponse:
    """Opaque 500 payload; the cause is only logged server-side."""
    return JSONResponse(status_code=500, content={"error": message})


# ============================================================================
# FASTAPI APPLICATION
# ============================================================================

app = FastAPI(
    title="Task Tracker API",
    description="Create, list and delete tasks.",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware (allow all origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return error_response("Internal server error")


@app.get("/")
async def root():
    return {"message": "Welcome to the Task Tracker API"}


# ============================================================================
# PYDANTIC MODELS - Request/Response Schemas
# ============================================================================

class TaskCreate(BaseModel):
    """Task creation request."""
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(default=None, description="Task details")


class TaskResponse(BaseModel):
    """A persisted task."""
    id: int
    title: str
    description: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    database: str


# ============================================================================
# ENDPOINT: Health Check
# ============================================================================

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health Check",
    description="Check if the API is up and the database reachable"
)
async def health_check(pool: TaskPool = Depends(get_task_pool)):
    """
    Health check endpoint.

    Always answers 200; a busy pool or an outage is reported as "degraded".
    """
    database = await pool.check()
    return {
        "status": "healthy" if database == "connected" else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "database": database,
    }


# ============================================================================
# ENDPOINTS: Tasks
# ============================================================================

@app.post(
    "/tasks",
    response_model=TaskResponse,
    status_code=201,
    tags=["Tasks"],
    summary="Create Task",
)
async def create_task(task: TaskCreate, pool: TaskPool = Depends(get_task_pool)):
    """
    Create a task.

    **Returns:** the new id with the submitted title and description echoed back
    """
    try:
        task_id = await queries.create_task(pool, task.title, task.description)
    except TaskStoreError as e:
        logger.error(f"Task creation failed: {e}", exc_info=True)
        return error_response("Failed to create task")

    logger.info(f"Task created: {task_id}")
    return {"id": task_id, "title": task.title, "description": task.description}


@app.get(
    "/tasks",
    response_model=List[TaskResponse],
    tags=["Tasks"],
    summary="List Tasks",
)
async def list_tasks(pool: TaskPool = Depends(get_task_pool)):
    """List every task. An empty table gives an empty list."""
    try:
        return await queries.list_tasks(pool)
    except TaskStoreError as e:
        logger.error(f"Task listing failed: {e}", exc_info=True)
        return error_response("Failed to list tasks")


@app.delete(
    "/tasks/{task_id}",
    status_code=204,
    response_class=Response,
    tags=["Tasks"],
    summary="Delete Task",
)
async def delete_task(task_id: str, pool: TaskPool = Depends(get_task_pool)):
    """
    Delete a task.

    Answers 204 whether or not the task existed.
    """
    try:
        await queries.delete_task(pool, task_id)
    except TaskStoreError as e:
        logger.error(f"Task deletion failed for {task_id}: {e}", exc_info=True)
        return error_response("Failed to delete task")

    return Response(status_code=204)


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.api.main:app",
        host="0.0.0.0",
        port=PORT,
    )
