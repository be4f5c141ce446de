"""Workflow engine and instance read models."""

from workflow_fsm.orchestrator.engine import WorkflowEngine
from workflow_fsm.orchestrator.projection import build_instance_view

__all__ = ["WorkflowEngine", "build_instance_view"]
