"""Built-in target environments."""

from metis_engine.environments.metis import create_metis_environment
from metis_engine.targets.registry import TargetEnvironmentRegistry


def register_builtin_environments(registry: TargetEnvironmentRegistry) -> TargetEnvironmentRegistry:
    """Register every built-in environment and return the registry."""
    registry.register(create_metis_environment())
    return registry


__all__ = ["create_metis_environment", "register_builtin_environments"]
