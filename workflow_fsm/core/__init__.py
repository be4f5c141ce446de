"""Core domain models and business logic."""

from workflow_fsm.core.models import (
    Action,
    DefinitionSpec,
    HistoryEntry,
    HistoryEntryView,
    InstanceView,
    State,
    WorkflowDefinition,
    WorkflowInstance,
)
from workflow_fsm.core.result import Err, ErrorKind, Ok, Result
from workflow_fsm.core.state_machine import InstanceStateMachine, InvalidStateTransitionError
from workflow_fsm.core.validation import (
    DefinitionValidator,
    Diagnostic,
    Severity,
    ValidationResult,
    validate_action_execution,
    validate_definition,
)

__all__ = [
    "Action",
    "DefinitionSpec",
    "HistoryEntry",
    "HistoryEntryView",
    "InstanceView",
    "State",
    "WorkflowDefinition",
    "WorkflowInstance",
    "Err",
    "ErrorKind",
    "Ok",
    "Result",
    "InstanceStateMachine",
    "InvalidStateTransitionError",
    "DefinitionValidator",
    "Diagnostic",
    "Severity",
    "ValidationResult",
    "validate_action_execution",
    "validate_definition",
]
