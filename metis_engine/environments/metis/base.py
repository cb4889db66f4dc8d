"""Base class for the built-in METIS targets."""

from abc import abstractmethod
from typing import Any, Dict, List

from metis_engine.executor.context import EffectExecutionContext
from metis_engine.targets.args import ArgSpec
from metis_engine.targets.migrations import TargetMigrationRegistry
from metis_engine.targets.target import Target


class MetisTarget(Target):
    """A target declared through class attributes.

    Subclasses set ``ID``, ``NAME``, ``DESCRIPTION`` and ``ARGS`` and
    implement ``apply``. Arguments are validated before ``apply`` runs.
    """

    ID: str = ""
    NAME: str = ""
    DESCRIPTION: str = ""
    ARGS: List[ArgSpec] = []

    def __init__(self):
        super().__init__(
            self.ID,
            self.NAME,
            self.DESCRIPTION,
            self.ARGS,
            self.build_migrations(),
        )

    def build_migrations(self) -> TargetMigrationRegistry:
        return TargetMigrationRegistry()

    async def execute(self, context: EffectExecutionContext) -> None:
        args = self.validate_args(dict(context.effect.args))
        await self.apply(context, args)

    @abstractmethod
    async def apply(self, context: EffectExecutionContext, args: Dict[str, Any]) -> None:
        """Perform the target's mutation with validated ``args``."""
