"""
Pytest fixtures and configuration for tests.
"""

from typing import Any, Callable

import pytest

from workflow_fsm.config import Environment, Settings
from workflow_fsm.core.models import (
    Action,
    DefinitionSpec,
    State,
    WorkflowDefinition,
)
from workflow_fsm.orchestrator.engine import WorkflowEngine
from workflow_fsm.storage.memory import InMemoryStore


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        environment=Environment.TEST,
        debug=True,
        log_level="DEBUG",
    )


@pytest.fixture
def approval_workflow() -> dict[str, Any]:
    """Document approval workflow: draft -> review -> approved."""
    return {
        "name": "Document Approval",
        "description": "Simple three-step review",
        "states": [
            {"id": "draft", "name": "Draft", "is_initial": True},
            {"id": "review", "name": "In Review"},
            {"id": "approved", "name": "Approved", "is_final": True},
        ],
        "actions": [
            {"id": "submit", "name": "Submit", "from_states": ["draft"], "to_state": "review"},
            {"id": "approve", "name": "Approve", "from_states": ["review"], "to_state": "approved"},
        ],
    }


@pytest.fixture
def approval_spec(approval_workflow) -> DefinitionSpec:
    return DefinitionSpec(**approval_workflow)


@pytest.fixture
def approval_definition(approval_workflow) -> WorkflowDefinition:
    return WorkflowDefinition(**approval_workflow)


@pytest.fixture
def make_definition() -> Callable[..., WorkflowDefinition]:
    """
    Factory for definitions from compact tuples.

    States: (id, flags) where flags may contain "initial", "final", "disabled".
    Actions: (id, from_states, to_state) or (id, from_states, to_state, enabled).
    """
    def _make(states, actions=(), name: str = "Test Workflow") -> WorkflowDefinition:
        return WorkflowDefinition(
            name=name,
            states=[
                State(
                    id=state_id,
                    name=state_id.title(),
                    is_initial="initial" in flags,
                    is_final="final" in flags,
                    enabled="disabled" not in flags,
                )
                for state_id, flags in states
            ],
            actions=[
                Action(
                    id=action[0],
                    name=action[0].title(),
                    from_states=list(action[1]),
                    to_state=action[2],
                    enabled=action[3] if len(action) > 3 else True,
                )
                for action in actions
            ],
        )

    return _make


@pytest.fixture
def engine() -> WorkflowEngine:
    """Engine backed by fresh in-memory stores."""
    return WorkflowEngine(definitions=InMemoryStore(), instances=InMemoryStore())
