"""Targets that modify an action's live success chance or process time.

Both accept an action argument without an ``actionKey`` to affect every
action of the node.
"""

from typing import Any, Dict, Tuple

from metis_engine.constants import ALL_ACTIONS_KEY, MetisTargetId
from metis_engine.environments.metis.base import MetisTarget
from metis_engine.executor.context import EffectExecutionContext
from metis_engine.targets.args import ArgSpec, ArgType, Dependency

SECONDS = "seconds"
MINUTES = "minutes"
HOURS = "hours"

MS_PER_UNIT = {SECONDS: 1000, MINUTES: 60 * 1000, HOURS: 60 * 60 * 1000}


def _action_keys(metadata: Dict[str, Any]) -> Tuple[str, str, str]:
    return metadata["forceKey"], metadata["nodeKey"], metadata.get("actionKey") or ALL_ACTIONS_KEY


class SuccessChanceModTarget(MetisTarget):
    ID = MetisTargetId.SUCCESS_CHANCE_MOD
    NAME = "Success Chance Modifier"
    DESCRIPTION = "Raises or lowers the success chance of an action."
    ARGS = [
        ArgSpec(id="actionMetadata", name="Action", type=ArgType.ACTION, required=True),
        ArgSpec(
            id="successChance",
            name="Success Chance",
            type=ArgType.NUMBER,
            required=True,
            default=0,
            min=-1,
            max=1,
            dependencies=[Dependency.truthy("actionMetadata")],
            description="Signed change, as a fraction. The result is clamped to [0, 1].",
        ),
    ]

    async def apply(self, context: EffectExecutionContext, args: Dict[str, Any]) -> None:
        force_key, node_key, action_key = _action_keys(args["actionMetadata"])
        context.modify_success_chance(
            args["successChance"], force_key=force_key, node_key=node_key, action_key=action_key
        )


class ProcessTimeModTarget(MetisTarget):
    ID = MetisTargetId.PROCESS_TIME_MOD
    NAME = "Process Time Modifier"
    DESCRIPTION = "Lengthens or shortens the process time of an action."
    ARGS = [
        ArgSpec(id="actionMetadata", name="Action", type=ArgType.ACTION, required=True),
        ArgSpec(
            id="processTimeUnit",
            name="Unit",
            type=ArgType.DROPDOWN,
            default=SECONDS,
            options=[
                {"id": SECONDS, "name": "Seconds", "value": SECONDS},
                {"id": MINUTES, "name": "Minutes", "value": MINUTES},
                {"id": HOURS, "name": "Hours", "value": HOURS},
            ],
            dependencies=[Dependency.truthy("actionMetadata")],
        ),
        ArgSpec(
            id="processTimeInSeconds",
            name="Process Time (seconds)",
            type=ArgType.NUMBER,
            required=True,
            default=0,
            min=-3600,
            max=3600,
            dependencies=[
                Dependency.truthy("actionMetadata"),
                Dependency.equals("processTimeUnit", [SECONDS]),
            ],
        ),
        ArgSpec(
            id="processTimeInMinutes",
            name="Process Time (minutes)",
            type=ArgType.NUMBER,
            required=True,
            default=0,
            min=-60,
            max=60,
            dependencies=[
                Dependency.truthy("actionMetadata"),
                Dependency.equals("processTimeUnit", [MINUTES]),
            ],
        ),
        ArgSpec(
            id="processTimeInHours",
            name="Process Time (hours)",
            type=ArgType.NUMBER,
            required=True,
            default=0,
            min=-1,
            max=1,
            dependencies=[
                Dependency.truthy("actionMetadata"),
                Dependency.equals("processTimeUnit", [HOURS]),
            ],
        ),
    ]

    UNIT_ARGS = {
        SECONDS: "processTimeInSeconds",
        MINUTES: "processTimeInMinutes",
        HOURS: "processTimeInHours",
    }

    async def apply(self, context: EffectExecutionContext, args: Dict[str, Any]) -> None:
        unit = args.get("processTimeUnit", SECONDS)
        delta_ms = args.get(self.UNIT_ARGS[unit], 0) * MS_PER_UNIT[unit]
        if not delta_ms:
            return
        force_key, node_key, action_key = _action_keys(args["actionMetadata"])
        context.modify_process_time(
            delta_ms, force_key=force_key, node_key=node_key, action_key=action_key
        )
