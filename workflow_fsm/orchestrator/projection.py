"""
Read-model projection of workflow instances.

Resolves the IDs recorded on an instance to display names from its definition.
"""

import logging
from typing import Optional

from workflow_fsm.core.models import (
    HistoryEntry,
    HistoryEntryView,
    InstanceView,
    WorkflowDefinition,
    WorkflowInstance,
)
from workflow_fsm.core.state_machine import InstanceStateMachine

logger = logging.getLogger(__name__)


def _project_entry(
    entry: HistoryEntry,
    definition: WorkflowDefinition,
) -> Optional[HistoryEntryView]:
    action = definition.get_action(entry.action_id)
    from_state = definition.get_state(entry.from_state_id)
    to_state = definition.get_state(entry.to_state_id)

    if action is None or from_state is None or to_state is None:
        return None

    return HistoryEntryView(
        action_id=entry.action_id,
        action_name=action.name,
        from_state_id=entry.from_state_id,
        from_state_name=from_state.name,
        to_state_id=entry.to_state_id,
        to_state_name=to_state.name,
        timestamp=entry.timestamp,
    )


def build_instance_view(
    instance: WorkflowInstance,
    definition: WorkflowDefinition,
) -> Optional[InstanceView]:
    """
    Build the read model of an instance.

    Returns None if the instance's current state cannot be resolved.
    History entries referencing an unknown action or state are left out
    of the view rather than failing it.
    """
    machine = InstanceStateMachine(definition, instance)
    current_state = machine.current_state
    if current_state is None:
        return None

    history = []
    for entry in instance.history:
        view = _project_entry(entry, definition)
        if view is None:
            logger.debug(
                f"Omitting unresolvable history entry '{entry.action_id}' "
                f"of instance {instance.id}"
            )
            continue
        history.append(view)

    return InstanceView(
        id=instance.id,
        definition_id=definition.id,
        definition_name=definition.name,
        current_state_id=current_state.id,
        current_state_name=current_state.name,
        is_final=current_state.is_final,
        created_at=instance.created_at,
        history=history,
        available_actions=[action.id for action in machine.available_actions()],
    )
