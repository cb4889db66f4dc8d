"""METIS effect execution engine.

Applies a mission action's declarative, versioned effects to a live session
through a library of targets.
"""

__version__ = "0.1.0"

from metis_engine.engine import EffectEngine, SessionLifecycleResult
from metis_engine.environments import create_metis_environment, register_builtin_environments
from metis_engine.executor import (
    ActionOutcome,
    ActionRecord,
    EffectExecutionContext,
    EffectExecutor,
    EffectOutcome,
    EffectRecord,
    EffectSource,
    OutcomeKind,
)
from metis_engine.persistence import ActionFileStore, EffectPersistence
from metis_engine.sessions import ActionExecution, MissionSession, SessionHandle
from metis_engine.stores import StoreRegistry, StoreState, TargetEnvStore
from metis_engine.targets import (
    ArgSpec,
    ArgType,
    Dependency,
    ScriptTarget,
    Target,
    TargetEnvironment,
    TargetEnvironmentRegistry,
    TargetMigrationRegistry,
)

__all__ = [
    "__version__",
    # Engine
    "EffectEngine",
    "SessionLifecycleResult",
    "create_metis_environment",
    "register_builtin_environments",
    # Execution
    "ActionOutcome",
    "ActionRecord",
    "EffectExecutionContext",
    "EffectExecutor",
    "EffectOutcome",
    "EffectRecord",
    "EffectSource",
    "OutcomeKind",
    # Persistence
    "ActionFileStore",
    "EffectPersistence",
    # Sessions and stores
    "ActionExecution",
    "MissionSession",
    "SessionHandle",
    "StoreRegistry",
    "StoreState",
    "TargetEnvStore",
    # Targets
    "ArgSpec",
    "ArgType",
    "Dependency",
    "ScriptTarget",
    "Target",
    "TargetEnvironment",
    "TargetEnvironmentRegistry",
    "TargetMigrationRegistry",
]
