"""Delay target: holds up the rest of its trigger batch."""

import asyncio
from typing import Any, Dict

from metis_engine.constants import MetisTargetId
from metis_engine.environments.metis.base import MetisTarget
from metis_engine.executor.context import EffectExecutionContext
from metis_engine.targets.args import ArgSpec, ArgType


def _duration_arg(arg_id: str, label: str, upper: int) -> ArgSpec:
    return ArgSpec(
        id=arg_id, name=label, type=ArgType.NUMBER, default=0, min=0, max=upper, integers_only=True
    )


class DelayTarget(MetisTarget):
    ID = MetisTargetId.DELAY
    NAME = "Delay"
    DESCRIPTION = "Waits before the next effect in the batch runs."
    ARGS = [
        _duration_arg("delayTimeHours", "Hours", 24),
        _duration_arg("delayTimeMinutes", "Minutes", 59),
        _duration_arg("delayTimeSeconds", "Seconds", 59),
    ]

    @staticmethod
    def duration_seconds(args: Dict[str, Any]) -> float:
        return (
            args.get("delayTimeHours", 0) * 3600
            + args.get("delayTimeMinutes", 0) * 60
            + args.get("delayTimeSeconds", 0)
        )

    async def apply(self, context: EffectExecutionContext, args: Dict[str, Any]) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.duration_seconds(args)
        # sleep() may wake a hair early; never finish before the deadline.
        remaining = deadline - loop.time()
        while remaining > 0:
            await asyncio.sleep(remaining)
            remaining = deadline - loop.time()
