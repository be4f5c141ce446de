"""
Domain models for the workflow state machine engine.

All models use Pydantic for validation and serialization with full Python 3.10+ type hints.
Definitions and their states/actions are frozen: once built they are never mutated.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new entity identifier."""
    return str(uuid4())


class State(BaseModel):
    """A single state of a workflow definition."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="State identifier, unique within its definition")
    name: str = Field(..., description="Display name")
    is_initial: bool = Field(default=False, description="Entry point of the state graph")
    is_final: bool = Field(default=False, description="No action may execute from this state")
    enabled: bool = Field(default=True)
    description: Optional[str] = Field(default=None)


class Action(BaseModel):
    """A named transition from a set of source states to one target state."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Action identifier, unique within its definition")
    name: str = Field(..., description="Display name")
    enabled: bool = Field(default=True)
    from_states: list[str] = Field(default_factory=list, description="Permitted source state IDs")
    to_state: str = Field(..., description="Target state ID")
    description: Optional[str] = Field(default=None)


class DefinitionSpec(BaseModel):
    """Input for creating a workflow definition."""

    name: str = Field(..., description="Workflow name, unique case-insensitively")
    description: Optional[str] = Field(default=None)
    states: list[State] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Document Approval",
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
        }
    )


class WorkflowDefinition(BaseModel):
    """Immutable template of states and the actions connecting them."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Unique workflow definition ID")
    name: str = Field(..., description="Unique workflow name")
    description: Optional[str] = Field(default=None)
    states: list[State] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    def get_state(self, state_id: str) -> Optional[State]:
        """Get state by ID."""
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    def get_action(self, action_id: str) -> Optional[Action]:
        """Get action by ID."""
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def get_initial_states(self) -> list[State]:
        """Get every state flagged as initial."""
        return [state for state in self.states if state.is_initial]

    @property
    def state_ids(self) -> set[str]:
        return {state.id for state in self.states}


class HistoryEntry(BaseModel):
    """One executed action in an instance's audit trail."""

    model_config = ConfigDict(frozen=True)

    action_id: str
    from_state_id: str
    to_state_id: str
    timestamp: datetime = Field(default_factory=utcnow)


class WorkflowInstance(BaseModel):
    """One running execution of a workflow definition."""

    id: str = Field(default_factory=new_id, description="Unique instance ID")
    definition_id: str = Field(..., description="Reference to workflow definition")
    current_state_id: str = Field(..., description="The single active state")
    created_at: datetime = Field(default_factory=utcnow)

    # Append-only
    history: list[HistoryEntry] = Field(default_factory=list)


class HistoryEntryView(BaseModel):
    """History entry with display names resolved."""

    action_id: str
    action_name: str
    from_state_id: str
    from_state_name: str
    to_state_id: str
    to_state_name: str
    timestamp: datetime


class InstanceView(BaseModel):
    """Read model of an instance, resolved against its definition."""

    id: str
    definition_id: str
    definition_name: str
    current_state_id: str
    current_state_name: str
    is_final: bool = False
    created_at: datetime
    history: list[HistoryEntryView] = Field(default_factory=list)
    available_actions: list[str] = Field(default_factory=list)
