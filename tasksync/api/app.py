"""
FastAPI application factory.
"""
import logging
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tasksync.api.routes import router
from tasksync.exceptions.handlers import setup_exception_handlers
from tasksync.storage.interface import TaskStorage

logger = logging.getLogger(__name__)


def create_app(storage: TaskStorage) -> FastAPI:
    """
    Build the HTTP server around a single storage instance.

    Args:
        storage: Backend every route reads from and writes to

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Serving tasks from {storage.__class__.__name__}")
        yield
        storage.close()
        logger.info("Storage closed")

    app = FastAPI(
        title="tasksync",
        description="Task list storage shared between tasksync replicas",
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.lock = threading.Lock()

    setup_exception_handlers(app)
    app.include_router(router)
    return app
