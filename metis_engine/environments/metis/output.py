"""Output target: sends a message to a force's output panel, or to everyone."""

from typing import Any, Dict

from metis_engine.constants import MetisTargetId
from metis_engine.environments.metis.base import MetisTarget
from metis_engine.executor.context import EffectExecutionContext
from metis_engine.targets.args import ArgSpec, ArgType


class OutputTarget(MetisTarget):
    ID = MetisTargetId.OUTPUT
    NAME = "Output Message"
    DESCRIPTION = "Sends a message to a force's output panel. Without a force, every force receives it."
    ARGS = [
        ArgSpec(id="message", name="Message", type=ArgType.LARGE_STRING, required=True),
        ArgSpec(id="forceMetadata", name="Force", type=ArgType.FORCE),
    ]

    async def apply(self, context: EffectExecutionContext, args: Dict[str, Any]) -> None:
        force = args.get("forceMetadata")
        context.send_output(args["message"], to=force["forceKey"] if force else None)
