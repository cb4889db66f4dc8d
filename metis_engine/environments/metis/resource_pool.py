"""Resource pool target: awards or deducts resources for a force."""

from typing import Any, Dict

from metis_engine.constants import MetisTargetId
from metis_engine.environments.metis.base import MetisTarget
from metis_engine.executor.context import EffectExecutionContext
from metis_engine.targets.args import ArgSpec, ArgType, Dependency
from metis_engine.targets.migrations import TargetMigrationRegistry

AWARD = "award"
DEDUCT = "deduct"


def rename_modifier_to_amount(args: Dict[str, Any]) -> Dict[str, Any]:
    """0.2.0: ``modifier`` became ``amount`` and ``operation`` was introduced.

    Already-migrated args pass through unchanged.
    """
    migrated = dict(args)
    if "modifier" in migrated:
        migrated.setdefault("amount", migrated.pop("modifier"))
    migrated.setdefault("operation", AWARD)
    return migrated


class ResourcePoolTarget(MetisTarget):
    ID = MetisTargetId.RESOURCE_POOL
    NAME = "Resource Pool"
    DESCRIPTION = "Awards resources to, or deducts resources from, a force."
    ARGS = [
        ArgSpec(id="forceMetadata", name="Force", type=ArgType.FORCE, required=True),
        ArgSpec(
            id="operation",
            name="Operation",
            type=ArgType.DROPDOWN,
            required=True,
            default=AWARD,
            options=[
                {"id": AWARD, "name": "Award", "value": AWARD},
                {"id": DEDUCT, "name": "Deduct", "value": DEDUCT},
            ],
            dependencies=[Dependency.truthy("forceMetadata")],
        ),
        ArgSpec(
            id="amount",
            name="Amount",
            type=ArgType.NUMBER,
            required=True,
            dependencies=[Dependency.truthy("forceMetadata")],
            description="Resources to award or deduct.",
        ),
    ]

    def build_migrations(self) -> TargetMigrationRegistry:
        return TargetMigrationRegistry().register("0.2.0", rename_modifier_to_amount)

    async def apply(self, context: EffectExecutionContext, args: Dict[str, Any]) -> None:
        amount = args["amount"]
        if args["operation"] == DEDUCT:
            amount = -amount
        context.modify_resource_pool(amount, force_key=args["forceMetadata"]["forceKey"])
