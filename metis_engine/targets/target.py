"""Targets - named, versioned units of mutation logic.

A target pairs an argument schema and a migration registry with an
``execute(context)`` capability. Concrete targets subclass ``Target``;
``ScriptTarget`` adapts a plain (sync or async) function.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from metis_engine.targets.args import ArgSpec, prepare_args, validate_args
from metis_engine.targets.migrations import MigrationResult, TargetMigrationRegistry
from metis_engine.utils.versions import parse_version

if TYPE_CHECKING:
    from metis_engine.executor.context import EffectExecutionContext
    from metis_engine.targets.environment import TargetEnvironment

logger = logging.getLogger(__name__)

TargetScript = Callable[["EffectExecutionContext"], Union[None, Awaitable[None]]]


class Target(ABC):
    """A named, versioned capability inside one target environment.

    Attributes:
        id: Unique within the owning environment.
        name: Display name.
        description: What the target does.
        arg_schema: The target's argument contract.
        migrations: Upgrades for effects recorded against older contracts.
        environment: The owning environment (set when the environment is built).
    """

    def __init__(
        self,
        id: str,
        name: str,
        description: str = "",
        arg_schema: Optional[Sequence[ArgSpec]] = None,
        migrations: Optional[TargetMigrationRegistry] = None,
    ):
        self.id = id
        self.name = name
        self.description = description
        self.arg_schema: List[ArgSpec] = list(arg_schema or [])
        self.migrations = migrations or TargetMigrationRegistry()
        self.environment: Optional["TargetEnvironment"] = None

    @abstractmethod
    async def execute(self, context: "EffectExecutionContext") -> None:
        """Apply the effect described by ``context.effect``."""

    @property
    def environment_id(self) -> Optional[str]:
        return self.environment.id if self.environment else None

    @property
    def version(self) -> str:
        """The target's current argument-contract version.

        The owning environment's version, or the latest migration version
        when that is newer.
        """
        candidates = [
            v
            for v in (
                self.environment.version if self.environment else None,
                self.migrations.latest_version,
            )
            if v
        ]
        if not candidates:
            return "0.0.0"
        return max(candidates, key=parse_version)

    def needs_migration(self, recorded_version: str) -> bool:
        """Whether an effect recorded at ``recorded_version`` is behind.

        Raises:
            MigrationError: If ``recorded_version`` is malformed.
        """
        return bool(self.migrations.pending_versions(recorded_version))

    def migrate(self, recorded_version: str, args: Dict[str, Any]) -> MigrationResult:
        """Upgrade ``args`` to this target's current contract.

        Returns:
            MigrationResult whose version is the target's current version.
        """
        result = self.migrations.migrate(recorded_version, args)
        if result.migrated:
            logger.debug(
                f"Migrated args for target '{self.id}' "
                f"{recorded_version} -> {self.version} via {result.applied}"
            )
        return MigrationResult(args=result.args, version=self.version, applied=result.applied)

    def prepare_args(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Resolve defaults and drop values whose dependencies are unmet."""
        return prepare_args(self.arg_schema, args)

    def validate_args(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """See ``metis_engine.targets.args.validate_args``."""
        return validate_args(self.arg_schema, args)

    def to_json(self) -> Dict[str, Any]:
        return {
            "targetEnvId": self.environment_id,
            "_id": self.id,
            "name": self.name,
            "description": self.description,
            "migrationVersions": self.migrations.versions,
            "args": [spec.to_json() for spec in self.arg_schema],
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, environment={self.environment_id!r})"


class ScriptTarget(Target):
    """Target whose behaviour is a script function of the execution context."""

    def __init__(
        self,
        id: str,
        name: str,
        script: TargetScript,
        description: str = "",
        arg_schema: Optional[Sequence[ArgSpec]] = None,
        migrations: Optional[TargetMigrationRegistry] = None,
    ):
        super().__init__(id, name, description, arg_schema, migrations)
        self.script = script

    async def execute(self, context: "EffectExecutionContext") -> None:
        result = self.script(context)
        if inspect.isawaitable(result):
            await result
