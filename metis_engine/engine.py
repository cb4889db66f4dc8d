"""
Effect Engine

Wires the registry, the store registry and the executor together and drives
session lifecycle:
- start_session: environment setup hooks, then mission-hosted
  session-setup and session-start effects
- end_session: session-teardown effects, environment teardown hooks,
  then every store partition of the session is destroyed

Nothing here is global: build one engine per process (or per test) and pass
it where it is needed.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from metis_engine.constants import Trigger
from metis_engine.environments import register_builtin_environments
from metis_engine.executor.effect_executor import ActionOutcome, EffectExecutor, EffectOutcome
from metis_engine.executor.effects import ActionRecord, EffectRecord, EffectSource
from metis_engine.persistence import EffectPersistence
from metis_engine.sessions.base import ActionExecution, SessionHandle
from metis_engine.stores.target_env_store import StoreRegistry
from metis_engine.targets.environment import EnvHookResult
from metis_engine.targets.registry import TargetEnvironmentRegistry
from metis_engine.utils.config_loader import EngineConfigLoader, get_engine_config_loader

logger = logging.getLogger(__name__)


@dataclass
class SessionLifecycleResult:
    """Hook results and effect outcomes of a session start or end."""

    hooks: List[EnvHookResult] = field(default_factory=list)
    outcomes: List[EffectOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(h.ok for h in self.hooks) and all(o.ok for o in self.outcomes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hooks": [h.to_json() for h in self.hooks],
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class EffectEngine:
    """Entry point for executing effects against live sessions.

    Args:
        registry: Installed target environments. A new, empty one by default.
        stores: Store partitions. Built from config by default.
        config_loader: Engine config. The shared loader by default.
        persistence: Hook for durable migrations.
        project_path: Project whose ``.metis/config`` overrides user config.
        rng: Source of success rolls (see ``EffectExecutor``).
    """

    def __init__(
        self,
        registry: Optional[TargetEnvironmentRegistry] = None,
        stores: Optional[StoreRegistry] = None,
        config_loader: Optional[EngineConfigLoader] = None,
        persistence: Optional[EffectPersistence] = None,
        project_path: Optional[Path] = None,
        rng: Optional[Callable[[], float]] = None,
    ):
        self.config_loader = config_loader or get_engine_config_loader()
        self.project_path = project_path
        self.registry = registry if registry is not None else TargetEnvironmentRegistry()
        self.stores = stores if stores is not None else StoreRegistry(
            self.config_loader.global_partition(project_path)
        )

        executor_kwargs: Dict[str, Any] = {}
        if rng is not None:
            executor_kwargs["rng"] = rng
        self.executor = EffectExecutor(
            self.registry,
            self.stores,
            persist_migrations=self.config_loader.persist_migrations(project_path),
            persistence=persistence,
            log_outcomes=self.config_loader.log_outcomes(project_path),
            **executor_kwargs,
        )

    @classmethod
    def with_builtins(cls, **kwargs) -> "EffectEngine":
        """Engine whose registry holds the built-in environments."""
        engine = cls(**kwargs)
        register_builtin_environments(engine.registry)
        return engine

    @property
    def persistence(self) -> Optional[EffectPersistence]:
        return self.executor.persistence

    @persistence.setter
    def persistence(self, persistence: Optional[EffectPersistence]) -> None:
        self.executor.persistence = persistence

    async def start_session(
        self, session: SessionHandle, effects: Sequence[EffectRecord] = ()
    ) -> SessionLifecycleResult:
        """Set up every environment for ``session`` and fire mission-hosted
        session-setup and session-start effects.

        Raises:
            ValueError: If the global store partition shares its name with a
                registered environment.
        """
        if self.registry.has(self.stores.global_partition):
            raise ValueError(
                f"Global store partition '{self.stores.global_partition}' "
                f"collides with a registered target environment"
            )

        result = SessionLifecycleResult()
        for environment in self.registry.get_all():
            result.hooks += await environment.set_up(session, self.stores)

        for trigger in (Trigger.SESSION_SETUP, Trigger.SESSION_START):
            result.outcomes += await self.executor.run_trigger(effects, trigger, session)

        logger.info(
            f"Started session '{session.session_id}' "
            f"({len(result.hooks)} hook(s), {len(result.outcomes)} effect(s))"
        )
        return result

    async def end_session(
        self, session: SessionHandle, effects: Sequence[EffectRecord] = ()
    ) -> SessionLifecycleResult:
        """Fire session-teardown effects, tear down every environment and
        destroy the session's store partitions.

        Pending executions are aborted first.
        """
        for execution in session.pending_executions:
            execution.abort()

        result = SessionLifecycleResult()
        try:
            result.outcomes += await self.executor.run_trigger(effects, Trigger.SESSION_TEARDOWN, session)
            for environment in self.registry.get_all():
                result.hooks += await environment.tear_down(session, self.stores)
        finally:
            removed = self.stores.clean_up(session.session_id)

        logger.info(f"Ended session '{session.session_id}' ({removed} store partition(s) destroyed)")
        return result

    async def run_trigger(
        self,
        effects: Sequence[EffectRecord],
        trigger: str,
        session: SessionHandle,
        source: Optional[EffectSource] = None,
        execution: Optional[ActionExecution] = None,
    ) -> List[EffectOutcome]:
        return await self.executor.run_trigger(effects, trigger, session, source, execution)

    async def execute_action(
        self,
        action: ActionRecord,
        session: SessionHandle,
        execution: Optional[ActionExecution] = None,
    ) -> ActionOutcome:
        return await self.executor.execute_action(action, session, execution)
