"""Targets, target environments and their registry."""

from metis_engine.targets.args import (
    ArgSpec,
    ArgType,
    Dependency,
    dependencies_met,
    prepare_args,
    resolve_defaults,
    sanitize_args,
    validate_args,
)
from metis_engine.targets.environment import (
    EnvHook,
    EnvHookContext,
    EnvHookResult,
    TargetEnvironment,
)
from metis_engine.targets.migrations import (
    MigrationResult,
    TargetMigration,
    TargetMigrationRegistry,
)
from metis_engine.targets.registry import TargetEnvironmentRegistry
from metis_engine.targets.target import ScriptTarget, Target

__all__ = [
    # Arguments
    "ArgSpec",
    "ArgType",
    "Dependency",
    "dependencies_met",
    "prepare_args",
    "resolve_defaults",
    "sanitize_args",
    "validate_args",
    # Environments
    "EnvHook",
    "EnvHookContext",
    "EnvHookResult",
    "TargetEnvironment",
    "TargetEnvironmentRegistry",
    # Migrations
    "MigrationResult",
    "TargetMigration",
    "TargetMigrationRegistry",
    # Targets
    "ScriptTarget",
    "Target",
]
