"""
FastAPI routes for the workflow engine API.

Implements the core API endpoints:
- GET  /api/workflows/definitions - List definitions
- GET  /api/workflows/definitions/:id - Get definition
- POST /api/workflows/definitions - Create definition
- POST /api/workflows/instances - Start instance
- GET  /api/workflows/instances - List instance views
- GET  /api/workflows/instances/:id - Get instance view
- POST /api/workflows/instances/:id/actions - Execute action
- GET  /api/workflows/health - Health check
"""

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from workflow_fsm import __version__
from workflow_fsm.core.models import DefinitionSpec, InstanceView, WorkflowDefinition
from workflow_fsm.core.result import Err, ErrorKind
from workflow_fsm.orchestrator.engine import WorkflowEngine
from workflow_fsm.storage.redis.connection import ping

router = APIRouter(prefix="/api/workflows")


# ==================== Request/Response Models ====================

class StartInstanceRequest(BaseModel):
    """Request body for starting a workflow instance."""

    definition_id: str = Field(..., description="Definition to instantiate")


class ExecuteActionRequest(BaseModel):
    """Request body for executing an action."""

    action_id: str = Field(..., description="Action to execute")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    services: dict[str, str]


# ==================== Helpers ====================

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.OPERATION: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_error(err: Err) -> NoReturn:
    """Translate a failed engine result into an HTTP error."""
    raise HTTPException(
        status_code=_STATUS_BY_KIND[err.kind],
        detail={"errors": err.errors},
    )


async def get_engine(request: Request) -> WorkflowEngine:
    """Get engine from app state."""
    return request.app.state.engine


# ==================== Definition Routes ====================

@router.get(
    "/definitions",
    response_model=list[WorkflowDefinition],
    tags=["definitions"],
    summary="List all workflow definitions",
)
async def list_definitions(engine: WorkflowEngine = Depends(get_engine)):
    result = await engine.list_definitions()
    if not result.is_ok:
        raise_for_error(result)
    return result.value


@router.get(
    "/definitions/{definition_id}",
    response_model=WorkflowDefinition,
    tags=["definitions"],
    summary="Get workflow definition by ID",
)
async def get_definition(definition_id: str, engine: WorkflowEngine = Depends(get_engine)):
    result = await engine.get_definition(definition_id)
    if not result.is_ok:
        raise_for_error(result)
    return result.value


@router.post(
    "/definitions",
    response_model=WorkflowDefinition,
    status_code=status.HTTP_201_CREATED,
    tags=["definitions"],
    summary="Create workflow definition",
    description="Exactly one initial state is required; warnings do not block creation.",
)
async def create_definition(spec: DefinitionSpec, engine: WorkflowEngine = Depends(get_engine)):
    result = await engine.create_definition(spec)
    if not result.is_ok:
        raise_for_error(result)
    return result.value


# ==================== Instance Routes ====================

async def _view_or_raise(engine: WorkflowEngine, instance_id: str) -> InstanceView:
    result = await engine.get_instance_view(instance_id)
    if not result.is_ok:
        raise_for_error(result)
    return result.value


@router.post(
    "/instances",
    response_model=InstanceView,
    status_code=status.HTTP_201_CREATED,
    tags=["instances"],
    summary="Start workflow instance",
)
async def start_instance(
    request: StartInstanceRequest,
    engine: WorkflowEngine = Depends(get_engine),
):
    result = await engine.start_instance(request.definition_id)
    if not result.is_ok:
        raise_for_error(result)
    return await _view_or_raise(engine, result.value.id)


@router.get(
    "/instances",
    response_model=list[InstanceView],
    tags=["instances"],
    summary="List all instances",
)
async def list_instances(engine: WorkflowEngine = Depends(get_engine)):
    result = await engine.list_instance_views()
    if not result.is_ok:
        raise_for_error(result)
    return result.value


@router.get(
    "/instances/{instance_id}",
    response_model=InstanceView,
    tags=["instances"],
    summary="Get instance by ID",
)
async def get_instance(instance_id: str, engine: WorkflowEngine = Depends(get_engine)):
    return await _view_or_raise(engine, instance_id)


@router.post(
    "/instances/{instance_id}/actions",
    response_model=InstanceView,
    tags=["instances"],
    summary="Execute action on instance",
    description="Moves the instance to the action's target state if every guard passes.",
)
async def execute_action(
    instance_id: str,
    request: ExecuteActionRequest,
    engine: WorkflowEngine = Depends(get_engine),
):
    result = await engine.execute_action(instance_id, request.action_id)
    if not result.is_ok:
        raise_for_error(result)
    return await _view_or_raise(engine, instance_id)


# ==================== Health Check Routes ====================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Check health of the configured storage."""
    services = {"engine": "healthy"}

    redis_client = getattr(request.app.state, "redis", None)
    if redis_client is not None:
        services["redis"] = "healthy" if await ping(redis_client) else "unhealthy"

    unhealthy = any(s == "unhealthy" for s in services.values())
    return HealthResponse(
        status="degraded" if unhealthy else "healthy",
        version=__version__,
        services=services,
    )
