"""
FastAPI application factory.

Creates and configures the workflow engine API application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from workflow_fsm import __version__
from workflow_fsm.api.routes import router
from workflow_fsm.config import StorageBackend, get_settings
from workflow_fsm.core.models import WorkflowDefinition, WorkflowInstance
from workflow_fsm.orchestrator.engine import WorkflowEngine
from workflow_fsm.storage.memory import InMemoryStore
from workflow_fsm.storage.redis import RedisStore, close_redis, get_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Builds the engine on the configured storage backend unless one was
    supplied to ``create_app``.
    """
    settings = get_settings()
    uses_redis = False

    logger.info("Starting Workflow State Machine Engine...")

    if getattr(app.state, "engine", None) is None:
        if settings.storage.backend == StorageBackend.REDIS:
            redis_client = await get_redis()
            app.state.redis = redis_client
            uses_redis = True
            app.state.engine = WorkflowEngine(
                definitions=RedisStore(redis_client, WorkflowDefinition, "definition"),
                instances=RedisStore(redis_client, WorkflowInstance, "instance"),
            )
            logger.info("Engine using Redis storage")
        else:
            app.state.engine = WorkflowEngine(
                definitions=InMemoryStore(),
                instances=InMemoryStore(),
            )
            logger.info("Engine using in-memory storage")

    logger.info(f"Workflow Engine started - Environment: {settings.environment.value}")

    yield

    logger.info("Shutting down Workflow State Machine Engine...")

    if uses_redis:
        await close_redis()

    logger.info("Workflow Engine shutdown complete")


def create_app(engine: Optional[WorkflowEngine] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        engine: Pre-built engine to serve; built from settings at startup if omitted
    """
    settings = get_settings()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        description="Finite-state-machine workflow engine",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.engine = engine

    app.include_router(router)

    # Root endpoint
    @app.get("/", tags=["root"])
    async def root():
        return {
            "name": settings.app_name,
            "version": __version__,
            "status": "running",
        }

    return app


# Application instance for uvicorn
app = create_app()
