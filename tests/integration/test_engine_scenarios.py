"""
Scenario tests for the workflow engine.

Covers the full lifecycle over in-memory stores:
1. Definition creation and rejection
2. Instance start
3. Action execution up to a final state
4. Concurrent mutations
5. Storage failures
"""

import asyncio

import pytest

from workflow_fsm.core.models import DefinitionSpec, WorkflowInstance
from workflow_fsm.core.result import ErrorKind
from workflow_fsm.orchestrator.engine import WorkflowEngine
from workflow_fsm.storage.memory import InMemoryStore


class SlowStore(InMemoryStore):
    """In-memory store that yields to the event loop on every call."""

    async def get(self, entity_id):
        await asyncio.sleep(0.01)
        return await super().get(entity_id)

    async def get_all(self):
        await asyncio.sleep(0.01)
        return await super().get_all()

    async def put(self, entity, entity_id=None):
        await asyncio.sleep(0.01)
        return await super().put(entity, entity_id)


class BrokenStore(InMemoryStore):
    """Store whose reads fail with an internal error."""

    async def get(self, entity_id):
        raise RuntimeError("connection reset by peer at 10.0.0.7")

    async def get_all(self):
        raise RuntimeError("connection reset by peer at 10.0.0.7")


# ==================== Scenario A: Happy Path ====================


class TestScenarioAApprovalFlow:
    """
    Scenario A: draft -> review -> approved.

    Tests:
    1. Instance starts at the initial state
    2. Each action moves the instance and records history
    3. Nothing executes from the final state
    """

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, engine, approval_spec):
        created = await engine.create_definition(approval_spec)
        assert created.is_ok
        definition = created.value

        started = await engine.start_instance(definition.id)
        assert started.is_ok
        instance = started.value
        assert instance.current_state_id == "draft"
        assert instance.history == []

        submitted = await engine.execute_action(instance.id, "submit")
        assert submitted.is_ok
        assert submitted.value.current_state_id == "review"
        assert len(submitted.value.history) == 1

        approved = await engine.execute_action(instance.id, "approve")
        assert approved.is_ok
        assert approved.value.current_state_id == "approved"
        assert len(approved.value.history) == 2

        again = await engine.execute_action(instance.id, "submit")
        assert not again.is_ok
        assert again.kind == ErrorKind.VALIDATION
        assert any("final state" in e for e in again.errors)

        stored = (await engine.get_instance(instance.id)).value
        assert stored.current_state_id == "approved"
        assert len(stored.history) == 2

    @pytest.mark.asyncio
    async def test_history_forms_contiguous_trail(self, engine, approval_spec):
        definition = (await engine.create_definition(approval_spec)).value
        instance = (await engine.start_instance(definition.id)).value

        for action_id in ("submit", "approve"):
            before = (await engine.get_instance(instance.id)).value
            after = (await engine.execute_action(instance.id, action_id)).value

            assert len(after.history) == len(before.history) + 1
            assert after.history[-1].from_state_id == before.current_state_id

        history = after.history
        assert history[0].from_state_id == "draft"
        assert history[-1].to_state_id == after.current_state_id
        for previous, current in zip(history, history[1:]):
            assert current.from_state_id == previous.to_state_id
            assert current.timestamp >= previous.timestamp

    @pytest.mark.asyncio
    async def test_instance_view(self, engine, approval_spec):
        definition = (await engine.create_definition(approval_spec)).value
        instance = (await engine.start_instance(definition.id)).value
        await engine.execute_action(instance.id, "submit")

        view = (await engine.get_instance_view(instance.id)).value

        assert view.current_state_name == "In Review"
        assert view.history[0].action_name == "Submit"
        assert view.available_actions == ["approve"]


# ==================== Scenario B/C: Rejected Definitions ====================


class TestRejectedDefinitions:
    """Definitions with blocking errors are never persisted."""

    @pytest.mark.asyncio
    async def test_two_initial_states(self, engine, approval_workflow):
        approval_workflow["states"][1]["is_initial"] = True

        result = await engine.create_definition(DefinitionSpec(**approval_workflow))

        assert not result.is_ok
        assert result.kind == ErrorKind.VALIDATION
        assert any("too many initial states" in e.lower() for e in result.errors)
        assert (await engine.list_definitions()).value == []

    @pytest.mark.asyncio
    async def test_unknown_from_state(self, engine, approval_workflow):
        approval_workflow["actions"][0]["from_states"] = ["draft", "archive"]

        result = await engine.create_definition(DefinitionSpec(**approval_workflow))

        assert not result.is_ok
        assert any("invalid from-state" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_only_errors_are_returned(self, engine, approval_workflow):
        approval_workflow["states"].append({"id": "orphan", "name": "Orphan"})
        approval_workflow["actions"].append(
            {"id": "bad", "name": "Bad", "from_states": ["draft"], "to_state": "nowhere"}
        )

        result = await engine.create_definition(DefinitionSpec(**approval_workflow))

        assert result.errors == ["Action 'bad' has invalid to-state: nowhere"]

    @pytest.mark.asyncio
    async def test_warnings_do_not_block(self, engine, approval_workflow):
        approval_workflow["states"].append({"id": "orphan", "name": "Orphan"})

        result = await engine.create_definition(DefinitionSpec(**approval_workflow))

        assert result.is_ok

    @pytest.mark.asyncio
    async def test_duplicate_name_case_insensitive(self, engine, approval_workflow):
        assert (await engine.create_definition(DefinitionSpec(**approval_workflow))).is_ok

        approval_workflow["name"] = "  document APPROVAL "
        result = await engine.create_definition(DefinitionSpec(**approval_workflow))

        assert not result.is_ok
        assert "already exists" in result.errors[0]
        assert len((await engine.list_definitions()).value) == 1


class TestDefinitionNormalization:
    """Text fields are trimmed before validation and storage."""

    @pytest.mark.asyncio
    async def test_text_is_trimmed(self, engine):
        spec = DefinitionSpec(
            name="  Padded  ",
            description="   ",
            states=[
                {"id": " open ", "name": " Open ", "is_initial": True},
                {"id": "closed", "name": "Closed", "is_final": True, "description": " done "},
            ],
            actions=[
                {"id": " close ", "name": "Close", "from_states": [" open"], "to_state": "closed "},
            ],
        )

        result = await engine.create_definition(spec)

        assert result.is_ok
        definition = result.value
        assert definition.name == "Padded"
        assert definition.description is None
        assert [s.id for s in definition.states] == ["open", "closed"]
        assert definition.states[1].description == "done"
        assert definition.actions[0].id == "close"
        assert definition.actions[0].from_states == ["open"]
        assert definition.actions[0].to_state == "closed"


# ==================== Properties of Accepted Definitions ====================


class TestAcceptedDefinitionProperties:

    @pytest.mark.asyncio
    async def test_accepted_definitions_are_well_formed(self, engine, approval_spec):
        definition = (await engine.create_definition(approval_spec)).value
        stored = (await engine.get_definition(definition.id)).value

        assert len(stored.get_initial_states()) == 1
        for action in stored.actions:
            assert set(action.from_states) <= stored.state_ids
            assert action.to_state in stored.state_ids

    @pytest.mark.asyncio
    async def test_get_definition_not_found(self, engine):
        result = await engine.get_definition("missing")

        assert result.kind == ErrorKind.NOT_FOUND


# ==================== Instance Start ====================


class TestStartInstance:

    @pytest.mark.asyncio
    async def test_unknown_definition(self, engine):
        result = await engine.start_instance("missing")

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.errors == ["Workflow definition 'missing' not found"]

    @pytest.mark.asyncio
    async def test_disabled_initial_state(self, engine, approval_workflow):
        approval_workflow["states"][0]["enabled"] = False
        definition = (await engine.create_definition(DefinitionSpec(**approval_workflow))).value

        result = await engine.start_instance(definition.id)

        assert result.kind == ErrorKind.VALIDATION
        assert result.errors == ["Initial state 'draft' is disabled"]
        assert (await engine.list_instances()).value == []

    @pytest.mark.asyncio
    async def test_revalidates_stored_definition(self, engine, make_definition):
        # Written straight to the store, skipping creation-time validation
        broken = make_definition([("a", set()), ("b", {"final"})])
        await engine.definitions.put(broken)

        result = await engine.start_instance(broken.id)

        assert result.kind == ErrorKind.VALIDATION
        assert "No initial state found - one is required" in result.errors

    @pytest.mark.asyncio
    async def test_instances_per_definition(self, engine, approval_spec, approval_workflow):
        first = (await engine.create_definition(approval_spec)).value
        approval_workflow["name"] = "Other"
        second = (await engine.create_definition(DefinitionSpec(**approval_workflow))).value

        await engine.start_instance(first.id)
        await engine.start_instance(first.id)
        await engine.start_instance(second.id)

        assert len((await engine.list_instances_for_definition(first.id)).value) == 2
        assert len((await engine.list_instances_for_definition(second.id)).value) == 1
        assert len((await engine.list_instances()).value) == 3


# ==================== Action Execution ====================


class TestExecuteAction:

    @pytest.mark.asyncio
    async def test_unknown_instance(self, engine):
        result = await engine.execute_action("missing", "submit")

        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_unknown_action(self, engine, approval_spec):
        definition = (await engine.create_definition(approval_spec)).value
        instance = (await engine.start_instance(definition.id)).value

        result = await engine.execute_action(instance.id, "publish")

        assert result.kind == ErrorKind.NOT_FOUND
        assert result.errors == ["Action 'publish' not found"]

    @pytest.mark.asyncio
    async def test_rejected_action_leaves_instance_unchanged(self, engine, approval_spec):
        definition = (await engine.create_definition(approval_spec)).value
        instance = (await engine.start_instance(definition.id)).value

        result = await engine.execute_action(instance.id, "approve")

        assert result.errors == ["Can't execute 'approve' from state 'draft'"]
        stored = (await engine.get_instance(instance.id)).value
        assert stored.current_state_id == "draft"
        assert stored.history == []

    @pytest.mark.asyncio
    async def test_disabled_action(self, engine, approval_workflow):
        approval_workflow["actions"][0]["enabled"] = False
        definition = (await engine.create_definition(DefinitionSpec(**approval_workflow))).value
        instance = (await engine.start_instance(definition.id)).value

        result = await engine.execute_action(instance.id, "submit")

        assert result.errors == ["Action 'submit' is disabled"]

    @pytest.mark.asyncio
    async def test_shared_action_from_many_states(self, engine, approval_workflow):
        approval_workflow["states"].append({"id": "rejected", "name": "Rejected", "is_final": True})
        approval_workflow["actions"].append(
            {"id": "reject", "name": "Reject", "from_states": ["draft", "review"], "to_state": "rejected"}
        )
        definition = (await engine.create_definition(DefinitionSpec(**approval_workflow))).value

        early = (await engine.start_instance(definition.id)).value
        late = (await engine.start_instance(definition.id)).value
        await engine.execute_action(late.id, "submit")

        assert (await engine.execute_action(early.id, "reject")).value.current_state_id == "rejected"
        assert (await engine.execute_action(late.id, "reject")).value.current_state_id == "rejected"


# ==================== Read Models ====================


class TestInstanceViews:

    @pytest.mark.asyncio
    async def test_view_not_found(self, engine):
        result = await engine.get_instance_view("missing")

        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_skips_unprojectable_instances(self, engine, approval_spec):
        definition = (await engine.create_definition(approval_spec)).value
        await engine.start_instance(definition.id)
        await engine.instances.put(
            WorkflowInstance(definition_id="deleted-definition", current_state_id="draft")
        )

        views = (await engine.list_instance_views()).value

        assert len(views) == 1
        assert views[0].definition_id == definition.id


# ==================== Concurrency ====================


class TestConcurrency:
    """Mutations are serialized across the whole engine."""

    @pytest.fixture
    def slow_engine(self) -> WorkflowEngine:
        return WorkflowEngine(definitions=SlowStore(), instances=SlowStore())

    @pytest.mark.asyncio
    async def test_concurrent_creates_with_same_name(self, slow_engine, approval_workflow):
        specs = [DefinitionSpec(**approval_workflow) for _ in range(5)]

        results = await asyncio.gather(*(slow_engine.create_definition(s) for s in specs))

        assert sum(r.is_ok for r in results) == 1
        for failed in (r for r in results if not r.is_ok):
            assert "already exists" in failed.errors[0]
        assert len((await slow_engine.list_definitions()).value) == 1

    @pytest.mark.asyncio
    async def test_concurrent_actions_on_one_instance(self, slow_engine, approval_spec):
        definition = (await slow_engine.create_definition(approval_spec)).value
        instance = (await slow_engine.start_instance(definition.id)).value

        results = await asyncio.gather(
            slow_engine.execute_action(instance.id, "submit"),
            slow_engine.execute_action(instance.id, "submit"),
        )

        assert sum(r.is_ok for r in results) == 1
        stored = (await slow_engine.get_instance(instance.id)).value
        assert stored.current_state_id == "review"
        assert len(stored.history) == 1


# ==================== Storage Failures ====================


class TestStorageFailures:
    """Store exceptions become one generic operation error."""

    @pytest.fixture
    def broken_engine(self) -> WorkflowEngine:
        return WorkflowEngine(definitions=BrokenStore(), instances=BrokenStore())

    @pytest.mark.asyncio
    async def test_create_definition(self, broken_engine, approval_spec):
        result = await broken_engine.create_definition(approval_spec)

        assert result.kind == ErrorKind.OPERATION
        assert len(result.errors) == 1
        assert "10.0.0.7" not in result.errors[0]

    @pytest.mark.asyncio
    async def test_reads_and_mutations(self, broken_engine):
        for result in (
            await broken_engine.get_definition("x"),
            await broken_engine.list_definitions(),
            await broken_engine.start_instance("x"),
            await broken_engine.execute_action("x", "y"),
            await broken_engine.get_instance("x"),
            await broken_engine.list_instances(),
            await broken_engine.list_instances_for_definition("x"),
            await broken_engine.get_instance_view("x"),
            await broken_engine.list_instance_views(),
        ):
            assert result.kind == ErrorKind.OPERATION

    @pytest.mark.asyncio
    async def test_lock_released_after_failure(self, approval_spec):
        definitions = InMemoryStore()
        engine = WorkflowEngine(definitions=definitions, instances=BrokenStore())
        assert (await engine.create_definition(approval_spec)).is_ok

        failed = await engine.execute_action("x", "submit")
        assert failed.kind == ErrorKind.OPERATION

        # Creation still goes through the same lock
        approval_spec.name = "Second"
        assert (await engine.create_definition(approval_spec)).is_ok
