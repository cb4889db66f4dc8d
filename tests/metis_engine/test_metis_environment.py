"""Tests for the built-in METIS target environment."""

import time

import pytest

from metis_engine.constants import MetisTargetId
from metis_engine.environments.metis.delay import DelayTarget
from metis_engine.environments.metis.resource_pool import rename_modifier_to_amount
from metis_engine.executor.effect_executor import OutcomeKind


async def run(executor, session, source, *effects, trigger="execution-success"):
    return await executor.run_trigger(list(effects), trigger, session, source)


class TestResourcePool:
    @pytest.mark.asyncio
    async def test_legacy_modifier_arg_is_migrated(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.RESOURCE_POOL,
            targetEnvironmentVersion="0.1.0",
            args={"modifier": 5, "forceMetadata": {"forceKey": "f1"}},
        )
        outcomes = await run(executor, session, source, effect)

        assert outcomes[0].kind == OutcomeKind.SUCCESS
        assert outcomes[0].args == {
            "operation": "award",
            "amount": 5,
            "forceMetadata": {"forceKey": "f1"},
        }
        assert outcomes[0].version == "1.0.0"
        assert session.forces["f1"].resources == 15

    @pytest.mark.asyncio
    async def test_deduct(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.RESOURCE_POOL,
            args={"operation": "deduct", "amount": 4, "forceMetadata": {"forceKey": "f1", "forceName": "Friendly"}},
        )
        await run(executor, session, source, effect)
        assert session.forces["f1"].resources == 6

    @pytest.mark.asyncio
    async def test_missing_amount_is_invalid(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.RESOURCE_POOL,
            args={"forceMetadata": {"forceKey": "f1"}},
        )
        outcomes = await run(executor, session, source, effect)

        assert outcomes[0].kind == OutcomeKind.SCRIPT_THREW
        assert outcomes[0].error.arg_id == "amount"
        assert session.forces["f1"].resources == 10

    def test_migration_tolerates_current_args(self):
        current = {"operation": "deduct", "amount": 2}
        assert rename_modifier_to_amount(current) == current


class TestDelay:
    @pytest.mark.asyncio
    async def test_delay_holds_up_later_effects(self, executor, make_effect, session, source):
        delay = make_effect(targetId=MetisTargetId.DELAY, order=1, args={"delayTimeSeconds": 2})
        output = make_effect(targetId=MetisTargetId.OUTPUT, order=2, args={"message": "After delay"})

        started = time.monotonic()
        outcomes = await run(executor, session, source, delay, output)
        elapsed = time.monotonic() - started

        assert all(o.ok for o in outcomes)
        assert 2.0 <= elapsed < 2.5
        assert session.forces["f1"].output[-1].message == "After delay"

    def test_duration(self):
        assert DelayTarget.duration_seconds(
            {"delayTimeHours": 1, "delayTimeMinutes": 2, "delayTimeSeconds": 3}
        ) == 3723

    @pytest.mark.asyncio
    async def test_fractional_seconds_rejected(self, executor, make_effect, session, source):
        effect = make_effect(targetId=MetisTargetId.DELAY, args={"delayTimeSeconds": 1.5})
        outcomes = await run(executor, session, source, effect)
        assert outcomes[0].kind == OutcomeKind.SCRIPT_THREW


class TestOpenState:
    @pytest.mark.asyncio
    async def test_open_and_close(self, executor, make_effect, session, source):
        open_child = make_effect(
            targetId=MetisTargetId.OPEN_STATE,
            order=1,
            args={"nodeMetadata": {"forceKey": "f1", "nodeKey": "n2"}, "openState": "open"},
        )
        close_root = make_effect(
            targetId=MetisTargetId.OPEN_STATE,
            order=2,
            args={"nodeMetadata": {"forceKey": "f1", "nodeKey": "n1"}, "openState": "close"},
        )
        await run(executor, session, source, open_child, close_root)

        assert session.get_node("f1", "n2").opened
        assert not session.get_node("f1", "n1").opened

    @pytest.mark.asyncio
    async def test_no_change_by_default(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.OPEN_STATE,
            args={"nodeMetadata": {"forceKey": "f1", "nodeKey": "n1"}},
        )
        outcomes = await run(executor, session, source, effect)

        assert outcomes[0].args["openState"] == "no-change"
        assert session.get_node("f1", "n1").opened


class TestActionMods:
    @pytest.mark.asyncio
    async def test_success_chance_single_action(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.SUCCESS_CHANCE_MOD,
            args={
                "actionMetadata": {"forceKey": "f1", "nodeKey": "n1", "actionKey": "a1"},
                "successChance": 0.25,
            },
        )
        await run(executor, session, source, effect)

        assert session.get_action("f1", "n1", "a1").success_chance == 0.75
        assert session.get_action("f1", "n1", "a2").success_chance == 0.9

    @pytest.mark.asyncio
    async def test_success_chance_out_of_range(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.SUCCESS_CHANCE_MOD,
            args={"actionMetadata": {"forceKey": "f1", "nodeKey": "n1"}, "successChance": 2},
        )
        outcomes = await run(executor, session, source, effect)
        assert outcomes[0].error.arg_id == "successChance"

    @pytest.mark.asyncio
    async def test_process_time_in_seconds(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.PROCESS_TIME_MOD,
            args={
                "actionMetadata": {"forceKey": "f1", "nodeKey": "n1", "actionKey": "a2"},
                "processTimeInSeconds": 2,
            },
        )
        outcomes = await run(executor, session, source, effect)

        # The unit defaults to seconds before the unit-specific args are checked.
        assert outcomes[0].args["processTimeUnit"] == "seconds"
        assert outcomes[0].args["processTimeInSeconds"] == 2
        assert session.get_action("f1", "n1", "a2").process_time_ms == 2000

    @pytest.mark.asyncio
    async def test_process_time_in_minutes_for_every_action(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.PROCESS_TIME_MOD,
            args={
                "actionMetadata": {"forceKey": "f1", "nodeKey": "n1"},
                "processTimeUnit": "minutes",
                "processTimeInMinutes": -1,
                "processTimeInSeconds": 30,
            },
        )
        outcomes = await run(executor, session, source, effect)

        # Seconds arg is for another unit; it is dropped before execution.
        assert "processTimeInSeconds" not in outcomes[0].args
        assert session.get_action("f1", "n1", "a1").process_time_ms == 0
        assert session.get_action("f1", "n1", "a2").process_time_ms == 0

    @pytest.mark.asyncio
    async def test_process_time_increase_for_every_action(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.PROCESS_TIME_MOD,
            args={
                "actionMetadata": {"forceKey": "f1", "nodeKey": "n1"},
                "processTimeUnit": "hours",
                "processTimeInHours": 1,
            },
        )
        await run(executor, session, source, effect)

        assert session.get_action("f1", "n1", "a1").process_time_ms == 1000 + 3600 * 1000
        assert session.get_action("f1", "n1", "a2").process_time_ms == 3600 * 1000


class TestOutputAndFiles:
    @pytest.mark.asyncio
    async def test_output_to_force(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.OUTPUT,
            args={"message": "Contact", "forceMetadata": {"forceKey": "f2"}},
        )
        await run(executor, session, source, effect)

        assert [o.message for o in session.forces["f2"].output] == ["Contact"]
        assert session.forces["f1"].output == []

    @pytest.mark.asyncio
    async def test_output_broadcast(self, executor, make_effect, session, source):
        effect = make_effect(targetId=MetisTargetId.OUTPUT, args={"message": "All stations"})
        await run(executor, session, source, effect)
        assert all(f.output[-1].message == "All stations" for f in session.forces.values())

    @pytest.mark.asyncio
    async def test_file_access(self, executor, make_effect, session, source):
        grant = make_effect(
            targetId=MetisTargetId.FILE_ACCESS,
            order=1,
            args={"fileMetadata": {"fileId": "file-1"}, "forceMetadata": {"forceKey": "f2"}},
        )
        revoke = make_effect(
            targetId=MetisTargetId.FILE_ACCESS,
            order=2,
            args={
                "fileMetadata": {"fileId": "file-1"},
                "forceMetadata": {"forceKey": "f1"},
                "access": "revoke",
            },
        )
        await run(executor, session, source, grant, revoke)

        assert session.has_access("file-1", "f2")
        assert not session.has_access("file-1", "f1")

    @pytest.mark.asyncio
    async def test_unknown_file_reported(self, executor, make_effect, session, source):
        effect = make_effect(
            targetId=MetisTargetId.FILE_ACCESS,
            args={"fileMetadata": {"fileId": "nope"}, "forceMetadata": {"forceKey": "f1"}},
        )
        outcomes = await run(executor, session, source, effect)
        assert outcomes[0].kind == OutcomeKind.SCRIPT_THREW
        assert outcomes[0].to_dict()["error"]["code"] == "SCRIPT_FAILED"
