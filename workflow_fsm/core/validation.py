"""
Workflow definition and transition validation.

Structural checks run over a whole definition (duplicates, initial state,
references, reachability, cycles); behavioral checks run over one pending
action execution. Both are pure: they only compute diagnostics.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from workflow_fsm.core.models import WorkflowDefinition, WorkflowInstance


class Severity(str, Enum):
    """Diagnostic severity. Only errors block an operation."""

    WARNING = "Warning"
    ERROR = "Error"


@dataclass(frozen=True)
class Diagnostic:
    """A single validation message."""

    code: str
    message: str
    severity: Severity = Severity.ERROR
    subject_id: Optional[str] = None


@dataclass
class ValidationResult:
    """Collected diagnostics of one validation run."""

    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def error_messages(self) -> list[str]:
        return [d.message for d in self.errors]

    def add_error(self, code: str, message: str, subject_id: Optional[str] = None) -> None:
        """Add a blocking diagnostic."""
        self.diagnostics.append(Diagnostic(code, message, Severity.ERROR, subject_id))

    def add_warning(self, code: str, message: str, subject_id: Optional[str] = None) -> None:
        """Add an advisory diagnostic."""
        self.diagnostics.append(Diagnostic(code, message, Severity.WARNING, subject_id))


# Adjacency: state_id -> [(action_id, target_state_id)]
Edges = dict[str, list[tuple[str, str]]]


def _duplicates(values: Iterable[str]) -> list[str]:
    """Values occurring more than once, in order of first occurrence."""
    return [value for value, count in Counter(values).items() if count > 1]


def _walk(start: str, edges: Edges) -> tuple[set[str], list[tuple[str, str, str]]]:
    """
    Iterative depth-first traversal from ``start``.

    Returns the visited set and every back-edge found, as
    (source_state, action_id, revisited_state). A back-edge points into the
    active path, so it closes a cycle.
    """
    visited = {start}
    on_path = {start}
    back_edges: list[tuple[str, str, str]] = []
    stack = [(start, iter(edges.get(start, ())))]

    while stack:
        node, neighbors = stack[-1]
        descended = False

        for action_id, target in neighbors:
            if target in on_path:
                back_edges.append((node, action_id, target))
            elif target not in visited:
                visited.add(target)
                on_path.add(target)
                stack.append((target, iter(edges.get(target, ()))))
                descended = True
                break

        if not descended:
            stack.pop()
            on_path.discard(node)

    return visited, back_edges


class DefinitionValidator:
    """
    Validates the structure of a workflow definition.

    Errors make the definition invalid; warnings (unreachable states,
    cycles, self-loops on final states) are advisory only.
    """

    def __init__(self, definition: WorkflowDefinition):
        self.definition = definition
        self._state_ids = {state.id for state in definition.states}
        self._final_ids = {state.id for state in definition.states if state.is_final}
        self._enabled_edges: Edges = defaultdict(list)
        self._all_edges: Edges = defaultdict(list)

        self._build_graph()

    def _build_graph(self) -> None:
        """Build from-state -> to-state adjacency lists in definition order."""
        for action in self.definition.actions:
            for source in action.from_states:
                self._all_edges[source].append((action.id, action.to_state))
                if action.enabled:
                    self._enabled_edges[source].append((action.id, action.to_state))

    def validate(self) -> ValidationResult:
        """
        Perform full validation of the definition.

        Returns:
            ValidationResult with every error and warning found
        """
        result = ValidationResult()

        self._validate_identity(result)
        self._validate_states(result)
        initial_id = self._validate_initial_state(result)
        if initial_id is not None:
            self._check_unreachable_states(initial_id, result)
        self._validate_actions(result)
        if initial_id is not None:
            self._detect_cycles(initial_id, result)

        return result

    def _validate_identity(self, result: ValidationResult) -> None:
        if not self.definition.id.strip():
            result.add_error("MISSING_DEFINITION_ID", "Workflow definition ID is required")
        if not self.definition.name.strip():
            result.add_error("MISSING_DEFINITION_NAME", "Workflow definition name is required")

    def _validate_states(self, result: ValidationResult) -> None:
        for position, state in enumerate(self.definition.states):
            if not state.id.strip():
                result.add_error("MISSING_STATE_ID", f"State at position {position} has no ID")
            if not state.name.strip():
                result.add_error(
                    "MISSING_STATE_NAME",
                    f"State '{state.id}' has no name",
                    subject_id=state.id,
                )

        for duplicate in _duplicates(state.id for state in self.definition.states):
            result.add_error(
                "DUPLICATE_STATE_ID",
                f"Duplicate state ID: {duplicate}",
                subject_id=duplicate,
            )

    def _validate_initial_state(self, result: ValidationResult) -> Optional[str]:
        """Require exactly one initial state; return its ID when there is one."""
        initial_states = self.definition.get_initial_states()

        if not initial_states:
            result.add_error("NO_INITIAL_STATE", "No initial state found - one is required")
            return None
        if len(initial_states) > 1:
            result.add_error(
                "TOO_MANY_INITIAL_STATES",
                f"Too many initial states ({len(initial_states)}) - only one allowed",
            )
            return None
        return initial_states[0].id

    def _check_unreachable_states(self, initial_id: str, result: ValidationResult) -> None:
        """Warn about intermediate states no enabled action path can reach."""
        reachable, _ = _walk(initial_id, self._enabled_edges)

        for state in self.definition.states:
            if state.is_initial or state.is_final or state.id in reachable:
                continue
            result.add_warning(
                "UNREACHABLE_STATE",
                f"State '{state.id}' is not reachable from the initial state '{initial_id}'",
                subject_id=state.id,
            )

    def _validate_actions(self, result: ValidationResult) -> None:
        for position, action in enumerate(self.definition.actions):
            if not action.id.strip():
                result.add_error("MISSING_ACTION_ID", f"Action at position {position} has no ID")
            if not action.name.strip():
                result.add_error(
                    "MISSING_ACTION_NAME",
                    f"Action '{action.id}' has no name",
                    subject_id=action.id,
                )

        for duplicate in _duplicates(action.id for action in self.definition.actions):
            result.add_error(
                "DUPLICATE_ACTION_ID",
                f"Duplicate action ID: {duplicate}",
                subject_id=duplicate,
            )

        for action in self.definition.actions:
            if not action.from_states:
                result.add_error(
                    "NO_FROM_STATES",
                    f"Action '{action.id}' has no from-states",
                    subject_id=action.id,
                )

            for source in action.from_states:
                if source not in self._state_ids:
                    result.add_error(
                        "INVALID_FROM_STATE",
                        f"Action '{action.id}' has invalid from-state: {source}",
                        subject_id=action.id,
                    )

            if action.to_state not in self._state_ids:
                result.add_error(
                    "INVALID_TO_STATE",
                    f"Action '{action.id}' has invalid to-state: {action.to_state}",
                    subject_id=action.id,
                )

            if action.to_state in action.from_states and action.to_state in self._final_ids:
                result.add_warning(
                    "SELF_LOOP_ON_FINAL_STATE",
                    f"Action '{action.id}' loops on final state '{action.to_state}'",
                    subject_id=action.id,
                )

    def _detect_cycles(self, initial_id: str, result: ValidationResult) -> None:
        """Warn about every back-edge reachable from the initial state."""
        _, back_edges = _walk(initial_id, self._all_edges)

        for source, action_id, revisited in back_edges:
            result.add_warning(
                "CYCLE_DETECTED",
                f"Cycle detected: action '{action_id}' from state '{source}' "
                f"returns to state '{revisited}'",
                subject_id=revisited,
            )


def validate_definition(definition: WorkflowDefinition) -> ValidationResult:
    """Run every structural check over a definition."""
    return DefinitionValidator(definition).validate()


def validate_action_execution(
    definition: WorkflowDefinition,
    instance: WorkflowInstance,
    action_id: str,
) -> ValidationResult:
    """
    Check whether an action may execute from the instance's current state.

    A missing action or a missing current state ends the checks early,
    since the remaining checks have no subject; everything else accumulates.
    """
    result = ValidationResult()

    action = definition.get_action(action_id)
    if action is None:
        result.add_error("ACTION_NOT_FOUND", f"Action '{action_id}' not found", subject_id=action_id)
        return result

    if not action.enabled:
        result.add_error("ACTION_DISABLED", f"Action '{action_id}' is disabled", subject_id=action_id)

    state_id = instance.current_state_id
    current_state = definition.get_state(state_id)
    if current_state is None:
        result.add_error(
            "STATE_NOT_FOUND",
            f"Current state '{state_id}' not found in workflow definition",
            subject_id=state_id,
        )
        return result

    if not current_state.enabled:
        result.add_error("STATE_DISABLED", f"Current state '{state_id}' is disabled", subject_id=state_id)

    if state_id not in action.from_states:
        result.add_error(
            "INVALID_SOURCE_STATE",
            f"Can't execute '{action_id}' from state '{state_id}'",
            subject_id=action_id,
        )

    if current_state.is_final:
        result.add_error(
            "FINAL_STATE",
            f"Can't execute actions on final state '{state_id}'",
            subject_id=state_id,
        )

    return result
