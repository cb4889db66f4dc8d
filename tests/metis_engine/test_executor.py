"""Tests for the effect executor."""

import asyncio

import pytest

from metis_engine.executor.effect_executor import EffectExecutor, OutcomeKind
from metis_engine.executor.effects import ActionRecord
from metis_engine.sessions.base import ActionExecution
from metis_engine.targets.environment import TargetEnvironment
from metis_engine.targets.migrations import TargetMigrationRegistry
from metis_engine.targets.target import ScriptTarget
from metis_engine.utils.errors import ArgumentValidationError, ScriptExecutionError


@pytest.fixture
def calls():
    return []


@pytest.fixture
def lab(registry, calls):
    """A 'lab' environment whose targets record what they ran with."""

    def record(context):
        calls.append(context.effect.order)

    async def record_async(context):
        await asyncio.sleep(0)
        calls.append(context.effect.order)

    def boom(context):
        calls.append(context.effect.order)
        raise RuntimeError("kaboom")

    def strict(context):
        if "amount" not in context.effect.args:
            raise ArgumentValidationError("Missing required argument 'amount'", arg_id="amount")

    def versioned(context):
        calls.append(dict(context.effect.args))

    migrations = (
        TargetMigrationRegistry()
        .register("0.2.0", lambda args: {**args, "step": args.get("step", "") + "a"})
        .register("0.3.0", lambda args: {**args, "step": args["step"] + "b"})
    )
    broken_migrations = TargetMigrationRegistry().register("0.2.0", lambda args: args["missing"])

    environment = TargetEnvironment(
        "lab",
        "Lab",
        "0.3.0",
        [
            ScriptTarget("record", "Record", record),
            ScriptTarget("record-async", "Record Async", record_async),
            ScriptTarget("boom", "Boom", boom),
            ScriptTarget("strict", "Strict", strict),
            ScriptTarget("versioned", "Versioned", versioned, migrations=migrations),
            ScriptTarget("broken", "Broken", versioned, migrations=broken_migrations),
        ],
    )
    registry.register(environment)
    return environment


@pytest.fixture
def lab_executor(registry, stores, lab):
    return EffectExecutor(registry, stores)


def lab_effect(make_effect, target_id, order, trigger="execution-success", **fields):
    return make_effect(
        targetId=target_id, environmentId="lab", order=order, trigger=trigger,
        targetEnvironmentVersion=fields.pop("version", "0.3.0"), **fields
    )


class TestOrdering:
    @pytest.mark.asyncio
    async def test_runs_in_ascending_order(self, lab_executor, make_effect, session, calls):
        effects = [lab_effect(make_effect, "record", order) for order in (3, 1, 4, 2)]
        outcomes = await lab_executor.run_trigger(effects, "execution-success", session)

        assert calls == [1, 2, 3, 4]
        assert [o.order for o in outcomes] == [1, 2, 3, 4]
        assert all(o.ok for o in outcomes)

    @pytest.mark.asyncio
    async def test_ties_keep_original_position(self, lab_executor, make_effect, session):
        effects = [
            lab_effect(make_effect, "record", 2, name="last"),
            lab_effect(make_effect, "record", 1, name="first"),
            lab_effect(make_effect, "record", 1, name="second"),
            lab_effect(make_effect, "record", 1, name="third"),
        ]
        outcomes = await lab_executor.run_trigger(effects, "execution-success", session)
        assert [o.effect_name for o in outcomes] == ["first", "second", "third", "last"]

    @pytest.mark.asyncio
    async def test_async_scripts_awaited_in_sequence(self, lab_executor, make_effect, session, calls):
        effects = [
            lab_effect(make_effect, "record-async", 1),
            lab_effect(make_effect, "record", 2),
            lab_effect(make_effect, "record-async", 3),
        ]
        await lab_executor.run_trigger(effects, "execution-success", session)
        assert calls == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_selects_only_matching_trigger(self, lab_executor, make_effect, session, calls):
        effects = [
            lab_effect(make_effect, "record", 1, trigger="execution-initiation"),
            lab_effect(make_effect, "record", 2, trigger="execution-success"),
            lab_effect(make_effect, "record", 3, trigger="failure"),
        ]
        outcomes = await lab_executor.run_trigger(effects, "failure", session)
        assert calls == [3]
        assert outcomes[0].trigger == "execution-failure"


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_second_effect_throws(self, lab_executor, make_effect, session, calls):
        effects = [
            lab_effect(make_effect, "record", 1),
            lab_effect(make_effect, "boom", 2),
            lab_effect(make_effect, "record", 3),
        ]
        outcomes = await lab_executor.run_trigger(effects, "execution-success", session)

        assert calls == [1, 2, 3]
        assert len(outcomes) == 3
        assert [o.kind for o in outcomes] == [
            OutcomeKind.SUCCESS,
            OutcomeKind.SCRIPT_THREW,
            OutcomeKind.SUCCESS,
        ]
        error = outcomes[1].error
        assert isinstance(error, ScriptExecutionError)
        assert isinstance(error.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_resolution_failures(self, lab_executor, make_effect, session):
        effects = [
            make_effect(targetId="ghost", environmentId="lab", order=1),
            make_effect(targetId="record", environmentId="nowhere", order=2),
            make_effect(targetId="ghost", environmentId="INFER", order=3),
            make_effect(targetId="record", environmentId="INFER", order=4),
        ]
        outcomes = await lab_executor.run_trigger(effects, "execution-success", session)

        assert [o.kind for o in outcomes] == [OutcomeKind.RESOLUTION_FAILED] * 3 + [OutcomeKind.SUCCESS]
        assert "not found in environment 'lab'" in str(outcomes[0].error)
        assert "not registered" in str(outcomes[1].error)
        assert outcomes[2].error.environment_id is None

    @pytest.mark.asyncio
    async def test_migration_failure(self, lab_executor, make_effect, session, calls):
        effects = [
            lab_effect(make_effect, "broken", 1, version="0.1.0"),
            lab_effect(make_effect, "versioned", 2, version="garbage"),
            lab_effect(make_effect, "record", 3),
        ]
        outcomes = await lab_executor.run_trigger(effects, "execution-success", session)

        assert [o.kind for o in outcomes] == [
            OutcomeKind.MIGRATION_FAILED,
            OutcomeKind.MIGRATION_FAILED,
            OutcomeKind.SUCCESS,
        ]
        assert calls == [3]

    @pytest.mark.asyncio
    async def test_argument_validation_error_kept(self, lab_executor, make_effect, session):
        outcomes = await lab_executor.run_trigger(
            [lab_effect(make_effect, "strict", 1)], "execution-success", session
        )
        assert outcomes[0].kind == OutcomeKind.SCRIPT_THREW
        assert isinstance(outcomes[0].error, ArgumentValidationError)
        assert outcomes[0].to_dict()["error"]["code"] == "INVALID_ARGUMENTS"

    @pytest.mark.asyncio
    async def test_diagnostic_names_effect(self, lab_executor, make_effect, session):
        effect = lab_effect(make_effect, "boom", 1, name="Blow up the bridge")
        outcomes = await lab_executor.run_trigger([effect], "execution-success", session)

        error = outcomes[0].to_dict()["error"]
        assert error["code"] == "SCRIPT_FAILED"
        assert error["effectId"] == effect.id
        assert error["effectName"] == "Blow up the bridge"
        assert error["details"] == {"cause": "RuntimeError: kaboom"}


class TestMigration:
    @pytest.mark.asyncio
    async def test_runs_with_current_contract(self, lab_executor, make_effect, session, calls):
        effect = lab_effect(make_effect, "versioned", 1, version="0.1.0", args={"step": ""})
        outcomes = await lab_executor.run_trigger([effect], "execution-success", session)

        assert calls == [{"step": "ab"}]
        assert outcomes[0].version == "0.3.0"
        assert outcomes[0].args == {"step": "ab"}

    @pytest.mark.asyncio
    async def test_perform_on_read_leaves_record_untouched(self, lab_executor, make_effect, session):
        effect = lab_effect(make_effect, "versioned", 1, version="0.2.0", args={"step": "a"})
        await lab_executor.run_trigger([effect], "execution-success", session)
        await lab_executor.run_trigger([effect], "execution-success", session)

        assert effect.target_environment_version == "0.2.0"
        assert effect.args == {"step": "a"}

    @pytest.mark.asyncio
    async def test_persist_migrations(self, registry, stores, lab, make_effect, session):
        saved = []

        class Recorder:
            def save_effect(self, effect):
                saved.append((effect.id, effect.target_environment_version))

        executor = EffectExecutor(registry, stores, persist_migrations=True, persistence=Recorder())
        effect = lab_effect(make_effect, "versioned", 1, version="0.1.0", args={"step": ""})

        await executor.run_trigger([effect], "execution-success", session)
        await executor.run_trigger([effect], "execution-success", session)

        assert effect.target_environment_version == "0.3.0"
        assert effect.args == {"step": "ab"}
        assert saved == [(effect.id, "0.3.0")]

    @pytest.mark.asyncio
    async def test_failed_save_does_not_stop_the_batch(self, registry, stores, lab, make_effect, session, calls):
        class FullDisk:
            def save_effect(self, effect):
                raise OSError("disk full")

        executor = EffectExecutor(registry, stores, persist_migrations=True, persistence=FullDisk())
        migrated = lab_effect(make_effect, "versioned", 1, version="0.1.0", args={"step": ""})
        effects = [migrated, lab_effect(make_effect, "record", 2)]

        outcomes = await executor.run_trigger(effects, "execution-success", session)

        assert [o.kind for o in outcomes] == [OutcomeKind.SUCCESS, OutcomeKind.SUCCESS]
        assert calls == [{"step": "ab"}, 2]
        # The record keeps its stored contract when the save fails.
        assert migrated.target_environment_version == "0.1.0"
        assert migrated.args == {"step": ""}

    @pytest.mark.asyncio
    async def test_legacy_recorded_versions(self, lab_executor, make_effect, session, calls):
        effects = [
            lab_effect(make_effect, "record", 1, version="0.1"),
            lab_effect(make_effect, "versioned", 2, version="0.1", args={"step": ""}),
        ]
        outcomes = await lab_executor.run_trigger(effects, "execution-success", session)

        assert [o.kind for o in outcomes] == [OutcomeKind.SUCCESS, OutcomeKind.SUCCESS]
        assert calls == [1, {"step": "ab"}]
        assert outcomes[0].version == "0.1"


class TestAbort:
    @pytest.mark.asyncio
    async def test_aborted_execution_skips_remaining(self, registry, stores, lab, make_effect, session, calls):
        execution = ActionExecution("f1", "n1", "a1")

        def abort_after_first(context):
            calls.append(context.effect.order)
            execution.abort()

        registry.register(TargetEnvironment(
            "abort-lab", "Abort Lab", "1.0.0", [ScriptTarget("abort", "Abort", abort_after_first)]
        ))
        effects = [
            make_effect(targetId="abort", environmentId="abort-lab", order=1),
            lab_effect(make_effect, "record", 2),
            lab_effect(make_effect, "record", 3),
        ]
        outcomes = await EffectExecutor(registry, stores).run_trigger(
            effects, "execution-success", session, execution=execution
        )

        assert calls == [1]
        assert [o.kind for o in outcomes] == [OutcomeKind.SUCCESS, OutcomeKind.SKIPPED, OutcomeKind.SKIPPED]
        assert outcomes[1].to_dict()["error"]["code"] == "EXECUTION_ABORTED"


class TestExecuteAction:
    def action(self, make_effect, node_key="n1", action_key="a2"):
        return ActionRecord(
            forceKey="f1",
            nodeKey=node_key,
            actionKey=action_key,
            effects=[
                lab_effect(make_effect, "record", 1, trigger="execution-initiation"),
                lab_effect(make_effect, "record", 2, trigger="execution-success"),
                lab_effect(make_effect, "record", 3, trigger="execution-failure"),
            ],
        )

    @pytest.mark.asyncio
    async def test_success_roll(self, registry, stores, lab, make_effect, session, calls):
        executor = EffectExecutor(registry, stores, rng=lambda: 0.5)
        result = await executor.execute_action(self.action(make_effect), session)

        assert result.succeeded is True
        assert not result.aborted
        assert calls == [1, 2]
        assert session.pending_executions == []

    @pytest.mark.asyncio
    async def test_failure_roll(self, registry, stores, lab, make_effect, session, calls):
        executor = EffectExecutor(registry, stores, rng=lambda: 0.95)
        result = await executor.execute_action(self.action(make_effect), session)

        assert result.succeeded is False
        assert calls == [1, 3]
        assert [o.trigger for o in result.outcomes] == ["execution-initiation", "execution-failure"]

    @pytest.mark.asyncio
    async def test_abort_during_processing(self, registry, stores, lab, make_effect, session, calls):
        """a1 processes for one second; closing its parent's ancestor aborts it."""
        executor = EffectExecutor(registry, stores, rng=lambda: 0.0)
        session.get_node("f1", "n2").opened = True
        session.get_action("f1", "n2", "a3").process_time_ms = 1000

        task = asyncio.create_task(
            executor.execute_action(self.action(make_effect, node_key="n2", action_key="a3"), session)
        )
        await asyncio.sleep(0.05)
        assert len(session.pending_executions) == 1

        session.close_node("f1", "n1")
        result = await asyncio.wait_for(task, timeout=1)

        assert result.aborted
        assert result.succeeded is None
        assert calls == [1]
        assert session.pending_executions == []

    @pytest.mark.asyncio
    async def test_action_without_keys(self, executor, session):
        with pytest.raises(ValueError):
            await executor.execute_action(ActionRecord(effects=[]), session)
