"""
Workflow engine.

Manages workflow definitions and the instances running them:
- Definition normalization and validation
- Instance start at the definition's initial state
- Guarded action execution with an append-only history
- Read models for instances

All mutations are serialized through one engine-wide lock. Reads go straight
to the stores, which only ever publish fully built entities.
"""

import asyncio
import logging
from typing import Optional

from workflow_fsm.core.models import (
    DefinitionSpec,
    InstanceView,
    WorkflowDefinition,
    WorkflowInstance,
)
from workflow_fsm.core.result import Err, Ok, Result, not_found, operation_error, validation_error
from workflow_fsm.core.state_machine import InstanceStateMachine, InvalidStateTransitionError
from workflow_fsm.core.validation import validate_definition
from workflow_fsm.orchestrator.projection import build_instance_view
from workflow_fsm.storage.base import Store

logger = logging.getLogger(__name__)


def _clean(text: Optional[str]) -> Optional[str]:
    """Trim optional text; blank becomes None."""
    if text is None:
        return None
    return text.strip() or None


def normalize_definition(spec: DefinitionSpec) -> WorkflowDefinition:
    """Build a candidate definition from a spec with all text fields trimmed."""
    states = [
        state.model_copy(
            update={
                "id": state.id.strip(),
                "name": state.name.strip(),
                "description": _clean(state.description),
            }
        )
        for state in spec.states
    ]
    actions = [
        action.model_copy(
            update={
                "id": action.id.strip(),
                "name": action.name.strip(),
                "from_states": [source.strip() for source in action.from_states],
                "to_state": action.to_state.strip(),
                "description": _clean(action.description),
            }
        )
        for action in spec.actions
    ]
    return WorkflowDefinition(
        name=spec.name.strip(),
        description=_clean(spec.description),
        states=states,
        actions=actions,
    )


class WorkflowEngine:
    """
    Main entry point for workflow operations.

    Responsibilities:
    - Validate and persist workflow definitions
    - Start instances and execute actions on them
    - Map every failure to a structured ``Err`` result
    """

    def __init__(
        self,
        definitions: Store[WorkflowDefinition],
        instances: Store[WorkflowInstance],
    ):
        self.definitions = definitions
        self.instances = instances

        # Held for one whole validate + persist cycle
        self._lock = asyncio.Lock()

    # ==================== Definitions ====================

    async def create_definition(self, spec: DefinitionSpec) -> Result[WorkflowDefinition]:
        """
        Validate and store a new workflow definition.

        Returns:
            Ok with the stored definition, or Err with every blocking error
        """
        async with self._lock:
            try:
                return await self._create_definition(spec)
            except Exception as e:
                logger.error(f"Failed to create workflow definition: {e}", exc_info=True)
                return operation_error("creating the workflow definition")

    async def _create_definition(self, spec: DefinitionSpec) -> Result[WorkflowDefinition]:
        candidate = normalize_definition(spec)

        wanted = candidate.name.casefold()
        for existing in await self.definitions.get_all():
            if existing.name.casefold() == wanted:
                logger.info(f"Rejected workflow definition: name '{candidate.name}' is taken")
                return validation_error(
                    f"A workflow definition named '{candidate.name}' already exists"
                )

        validation = validate_definition(candidate)
        for warning in validation.warnings:
            logger.warning(f"Workflow definition '{candidate.name}': {warning.message}")

        if not validation.is_valid:
            logger.info(
                f"Rejected workflow definition '{candidate.name}': "
                f"{len(validation.errors)} validation error(s)"
            )
            return validation_error(*validation.error_messages)

        definition = await self.definitions.put(candidate)
        logger.info(f"Created workflow definition '{definition.name}' ({definition.id})")
        return Ok(definition)

    async def get_definition(self, definition_id: str) -> Result[WorkflowDefinition]:
        """Get a workflow definition by ID."""
        try:
            definition = await self.definitions.get(definition_id)
        except Exception as e:
            logger.error(f"Failed to load workflow definition {definition_id}: {e}", exc_info=True)
            return operation_error("loading the workflow definition")

        if definition is None:
            return not_found(f"Workflow definition '{definition_id}' not found")
        return Ok(definition)

    async def list_definitions(self) -> Result[list[WorkflowDefinition]]:
        """Get all workflow definitions."""
        try:
            return Ok(await self.definitions.get_all())
        except Exception as e:
            logger.error(f"Failed to list workflow definitions: {e}", exc_info=True)
            return operation_error("listing workflow definitions")

    # ==================== Instances ====================

    async def start_instance(self, definition_id: str) -> Result[WorkflowInstance]:
        """
        Start a new instance of a workflow definition.

        The instance begins at the definition's initial state with an empty
        history.
        """
        async with self._lock:
            try:
                return await self._start_instance(definition_id)
            except Exception as e:
                logger.error(
                    f"Failed to start instance of definition {definition_id}: {e}",
                    exc_info=True,
                )
                return operation_error("starting the workflow instance")

    async def _start_instance(self, definition_id: str) -> Result[WorkflowInstance]:
        definition = await self.definitions.get(definition_id)
        if definition is None:
            return not_found(f"Workflow definition '{definition_id}' not found")

        validation = validate_definition(definition)
        if not validation.is_valid:
            return validation_error(*validation.error_messages)

        initial_state = definition.get_initial_states()[0]
        if not initial_state.enabled:
            return validation_error(f"Initial state '{initial_state.id}' is disabled")

        instance = await self.instances.put(
            WorkflowInstance(
                definition_id=definition.id,
                current_state_id=initial_state.id,
            )
        )
        logger.info(
            f"Started instance {instance.id} of '{definition.name}' "
            f"at state '{initial_state.id}'"
        )
        return Ok(instance)

    async def execute_action(self, instance_id: str, action_id: str) -> Result[WorkflowInstance]:
        """
        Execute an action on an instance.

        On success the instance moves to the action's target state and gains
        exactly one history entry.
        """
        async with self._lock:
            try:
                return await self._execute_action(instance_id, action_id)
            except Exception as e:
                logger.error(
                    f"Failed to execute action '{action_id}' on instance {instance_id}: {e}",
                    exc_info=True,
                )
                return operation_error("executing the action")

    async def _execute_action(self, instance_id: str, action_id: str) -> Result[WorkflowInstance]:
        instance = await self.instances.get(instance_id)
        if instance is None:
            return not_found(f"Workflow instance '{instance_id}' not found")

        definition = await self.definitions.get(instance.definition_id)
        if definition is None:
            return not_found(f"Workflow definition '{instance.definition_id}' not found")

        try:
            updated = InstanceStateMachine(definition, instance).transition(action_id)
        except InvalidStateTransitionError as e:
            logger.info(f"Rejected action on instance {instance_id}: {e}")
            return Err(e.kind, e.errors)

        saved = await self.instances.put(updated)
        logger.info(
            f"Instance {saved.id}: '{action_id}' moved "
            f"'{instance.current_state_id}' -> '{saved.current_state_id}'"
        )
        return Ok(saved)

    async def get_instance(self, instance_id: str) -> Result[WorkflowInstance]:
        """Get a workflow instance by ID."""
        try:
            instance = await self.instances.get(instance_id)
        except Exception as e:
            logger.error(f"Failed to load workflow instance {instance_id}: {e}", exc_info=True)
            return operation_error("loading the workflow instance")

        if instance is None:
            return not_found(f"Workflow instance '{instance_id}' not found")
        return Ok(instance)

    async def list_instances(self) -> Result[list[WorkflowInstance]]:
        """Get all workflow instances."""
        try:
            return Ok(await self.instances.get_all())
        except Exception as e:
            logger.error(f"Failed to list workflow instances: {e}", exc_info=True)
            return operation_error("listing workflow instances")

    async def list_instances_for_definition(
        self,
        definition_id: str,
    ) -> Result[list[WorkflowInstance]]:
        """Get all instances started from one definition."""
        result = await self.list_instances()
        if not result.is_ok:
            return result
        return Ok([i for i in result.value if i.definition_id == definition_id])

    # ==================== Read Models ====================

    async def get_instance_view(self, instance_id: str) -> Result[InstanceView]:
        """Get the read model of an instance."""
        try:
            instance = await self.instances.get(instance_id)
            if instance is None:
                return not_found(f"Workflow instance '{instance_id}' not found")

            definition = await self.definitions.get(instance.definition_id)
        except Exception as e:
            logger.error(f"Failed to load workflow instance {instance_id}: {e}", exc_info=True)
            return operation_error("loading the workflow instance")

        if definition is None:
            return not_found(f"Workflow definition '{instance.definition_id}' not found")

        view = build_instance_view(instance, definition)
        if view is None:
            return not_found(
                f"Current state '{instance.current_state_id}' of instance "
                f"'{instance_id}' not found"
            )
        return Ok(view)

    async def list_instance_views(self) -> Result[list[InstanceView]]:
        """Get read models of all instances, skipping any that cannot be projected."""
        try:
            instances = await self.instances.get_all()
            definitions = {d.id: d for d in await self.definitions.get_all()}
        except Exception as e:
            logger.error(f"Failed to list workflow instances: {e}", exc_info=True)
            return operation_error("listing workflow instances")

        views = []
        for instance in instances:
            definition = definitions.get(instance.definition_id)
            view = build_instance_view(instance, definition) if definition else None
            if view is None:
                logger.debug(f"Skipping instance {instance.id}: cannot build view")
                continue
            views.append(view)
        return Ok(views)
