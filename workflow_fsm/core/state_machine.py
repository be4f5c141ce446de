"""
State machine for workflow instances.

The states and transitions come from the instance's definition; every
transition is guarded by ``validate_action_execution``. Final states are
terminal: the guard rejects any action from them.
"""

from datetime import datetime
from typing import Optional

from workflow_fsm.core.models import (
    Action,
    HistoryEntry,
    State,
    WorkflowDefinition,
    WorkflowInstance,
    utcnow,
)
from workflow_fsm.core.result import ErrorKind
from workflow_fsm.core.validation import validate_action_execution

# Guard failures caused by an absent action or state rather than a rule
_MISSING_REFERENCE_CODES = {"ACTION_NOT_FOUND", "STATE_NOT_FOUND"}


class InvalidStateTransitionError(Exception):
    """Raised when an action cannot be executed on an instance."""

    def __init__(
        self,
        action_id: str,
        from_state: str,
        errors: list[str],
        kind: ErrorKind = ErrorKind.VALIDATION,
    ):
        self.action_id = action_id
        self.from_state = from_state
        self.errors = errors
        self.kind = kind
        super().__init__(
            f"Invalid transition via '{action_id}' from '{from_state}': " + "; ".join(errors)
        )


class InstanceStateMachine:
    """
    Drives one instance through its definition's state graph.

    The wrapped instance is never modified; ``transition`` returns a new
    instance carrying the appended history entry.
    """

    def __init__(self, definition: WorkflowDefinition, instance: WorkflowInstance):
        if instance.definition_id != definition.id:
            raise ValueError(
                f"Instance '{instance.id}' belongs to definition '{instance.definition_id}', "
                f"not '{definition.id}'"
            )
        self.definition = definition
        self.instance = instance

    @property
    def current_state(self) -> Optional[State]:
        """Get current state, or None if the definition no longer has it."""
        return self.definition.get_state(self.instance.current_state_id)

    @property
    def is_terminal(self) -> bool:
        """Check if the instance has reached a final state."""
        state = self.current_state
        return state is not None and state.is_final

    @property
    def history(self) -> list[HistoryEntry]:
        """Get state transition history."""
        return list(self.instance.history)

    def can_execute(self, action_id: str) -> bool:
        """Check if the action passes every execution guard right now."""
        return validate_action_execution(self.definition, self.instance, action_id).is_valid

    def available_actions(self) -> list[Action]:
        """Get actions executable from the current state, in definition order."""
        return [action for action in self.definition.actions if self.can_execute(action.id)]

    def transition(self, action_id: str, now: Optional[datetime] = None) -> WorkflowInstance:
        """
        Execute an action.

        Args:
            action_id: Action to execute
            now: Timestamp for the history entry (defaults to current UTC time)

        Returns:
            New WorkflowInstance advanced to the action's target state

        Raises:
            InvalidStateTransitionError: If a guard fails or the target state
                is missing or disabled
        """
        from_state_id = self.instance.current_state_id

        validation = validate_action_execution(self.definition, self.instance, action_id)
        if not validation.is_valid:
            missing = any(d.code in _MISSING_REFERENCE_CODES for d in validation.errors)
            raise InvalidStateTransitionError(
                action_id,
                from_state_id,
                validation.error_messages,
                kind=ErrorKind.NOT_FOUND if missing else ErrorKind.VALIDATION,
            )

        action = self.definition.get_action(action_id)
        target = self.definition.get_state(action.to_state)
        if target is None:
            raise InvalidStateTransitionError(
                action_id,
                from_state_id,
                [f"Target state '{action.to_state}' not found"],
                kind=ErrorKind.NOT_FOUND,
            )
        if not target.enabled:
            raise InvalidStateTransitionError(
                action_id,
                from_state_id,
                [f"Target state '{target.id}' is disabled"],
            )

        timestamp = now or utcnow()
        if self.instance.history:
            # Timestamps never go backwards, even if the clock does
            timestamp = max(timestamp, self.instance.history[-1].timestamp)

        entry = HistoryEntry(
            action_id=action_id,
            from_state_id=from_state_id,
            to_state_id=target.id,
            timestamp=timestamp,
        )

        return self.instance.model_copy(
            update={
                "current_state_id": target.id,
                "history": [*self.instance.history, entry],
            }
        )
