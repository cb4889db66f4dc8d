"""Open-state target: opens or closes a node.

Opening an open node, or closing a closed one, is a no-op. Closing a node
aborts in-progress executions on its descendants.
"""

from typing import Any, Dict

from metis_engine.constants import MetisTargetId
from metis_engine.environments.metis.base import MetisTarget
from metis_engine.executor.context import EffectExecutionContext
from metis_engine.targets.args import ArgSpec, ArgType, Dependency

NO_CHANGE = "no-change"
OPEN = "open"
CLOSE = "close"


class OpenStateTarget(MetisTarget):
    ID = MetisTargetId.OPEN_STATE
    NAME = "Node Open State"
    DESCRIPTION = "Opens or closes a node, revealing or hiding its descendants."
    ARGS = [
        ArgSpec(id="nodeMetadata", name="Node", type=ArgType.NODE, required=True),
        ArgSpec(
            id="openState",
            name="Open State",
            type=ArgType.DROPDOWN,
            required=True,
            default=NO_CHANGE,
            options=[
                {"id": NO_CHANGE, "name": "No Change", "value": NO_CHANGE},
                {"id": OPEN, "name": "Open", "value": OPEN},
                {"id": CLOSE, "name": "Close", "value": CLOSE},
            ],
            dependencies=[Dependency.truthy("nodeMetadata")],
        ),
    ]

    async def apply(self, context: EffectExecutionContext, args: Dict[str, Any]) -> None:
        node = args["nodeMetadata"]
        if args["openState"] == OPEN:
            context.open_node(force_key=node["forceKey"], node_key=node["nodeKey"])
        elif args["openState"] == CLOSE:
            context.close_node(force_key=node["forceKey"], node_key=node["nodeKey"])
