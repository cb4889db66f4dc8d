"""TargetMigrationRegistry - Upgrades stored effect arguments.

Each registered migration is keyed by the target-environment version that
introduced a new argument contract. Migrating an effect recorded at version V
applies, in ascending order, every transform whose version is strictly
greater than V, each consuming the previous transform's output.

Transforms are pure functions over the argument bag and must tolerate input
that is already compatible, since a registry may be run more than once
against the same effect.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from metis_engine.utils.errors import InvalidVersionError, MigrationError
from metis_engine.utils.versions import SemanticVersion, parse_recorded_version, parse_version

logger = logging.getLogger(__name__)

EffectArgs = Dict[str, Any]
MigrationTransform = Callable[[EffectArgs], EffectArgs]


@dataclass(frozen=True)
class TargetMigration:
    """A single (version -> transform) pair."""

    target_version: str
    transform: MigrationTransform

    def __post_init__(self):
        # Raises InvalidVersionError for malformed versions.
        parse_version(self.target_version)

    @property
    def parsed_version(self) -> SemanticVersion:
        return parse_version(self.target_version)


@dataclass
class MigrationResult:
    """Outcome of migrating an argument bag.

    Attributes:
        args: The final argument bag.
        version: The version the args are now compatible with.
        applied: Versions of the transforms that ran, in order.
    """

    args: EffectArgs
    version: str
    applied: List[str]

    @property
    def migrated(self) -> bool:
        return bool(self.applied)


class TargetMigrationRegistry:
    """Ordered set of migrations for one target.

    Usage:
        migrations = (
            TargetMigrationRegistry()
            .register("0.2.0", rename_modifier)
            .register("0.3.0", add_operation)
        )
    """

    def __init__(self):
        self._migrations: List[TargetMigration] = []

    def register(self, target_version: str, transform: MigrationTransform) -> "TargetMigrationRegistry":
        """Register a transform for ``target_version``.

        Returns:
            self, for chaining.

        Raises:
            InvalidVersionError: If the version is not a valid semantic version.
            MigrationError: If a migration for the version already exists.
        """
        migration = TargetMigration(target_version, transform)
        parsed = migration.parsed_version
        if any(m.parsed_version == parsed for m in self._migrations):
            raise MigrationError(
                f"Migration for version {target_version} is already registered",
                version=target_version,
            )
        self._migrations.append(migration)
        self._migrations.sort(key=lambda m: m.parsed_version)
        return self

    @property
    def versions(self) -> List[str]:
        """Registered versions in ascending order."""
        return [m.target_version for m in self._migrations]

    @property
    def latest_version(self) -> Optional[str]:
        """The latest version for which a migration exists."""
        return self._migrations[-1].target_version if self._migrations else None

    def __len__(self) -> int:
        return len(self._migrations)

    def pending_versions(self, recorded_version: str) -> List[str]:
        """Versions that must run to bring ``recorded_version`` up to date.

        Raises:
            MigrationError: If ``recorded_version`` is malformed.
        """
        return [m.target_version for m in self._pending(recorded_version)]

    def _pending(self, recorded_version: str) -> List[TargetMigration]:
        if not self._migrations:
            return []
        try:
            recorded = parse_recorded_version(recorded_version)
        except InvalidVersionError as e:
            raise MigrationError(
                f"Effect records an invalid version: {recorded_version!r}",
                version=str(recorded_version),
                cause=e,
            )
        return [m for m in self._migrations if m.parsed_version > recorded]

    def migrate(self, recorded_version: str, args: EffectArgs) -> MigrationResult:
        """Apply every pending transform to a copy of ``args``.

        Args:
            recorded_version: The version ``args`` are known to be compatible with.
            args: The stored argument bag (never mutated).

        Returns:
            MigrationResult with the final args and the latest version applied
            (``recorded_version`` when nothing was pending).

        Raises:
            MigrationError: If the recorded version is malformed or a transform fails.
        """
        pending = self._pending(recorded_version)
        current = copy.deepcopy(args)
        applied: List[str] = []

        for migration in pending:
            try:
                result = migration.transform(current)
            except Exception as e:
                raise MigrationError(
                    f"Migration to {migration.target_version} failed: {e}",
                    version=migration.target_version,
                    cause=e,
                )
            if not isinstance(result, dict):
                raise MigrationError(
                    f"Migration to {migration.target_version} returned "
                    f"{type(result).__name__}, expected a dict",
                    version=migration.target_version,
                )
            current = result
            applied.append(migration.target_version)
            logger.debug(f"Applied migration {migration.target_version}")

        final_version = applied[-1] if applied else recorded_version
        return MigrationResult(args=current, version=final_version, applied=applied)
