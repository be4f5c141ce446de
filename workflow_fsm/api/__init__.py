"""FastAPI application and routes."""

from workflow_fsm.api.app import create_app
from workflow_fsm.api.routes import router

__all__ = ["create_app", "router"]
