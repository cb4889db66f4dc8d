"""
Effect Executor

Runs the effects of one action trigger:
1. Select effects whose trigger matches
2. Order ascending by ``order`` (stable on ties)
3. Resolve each effect's target through the registry
4. Migrate stored args when the recorded version is behind
5. Execute the target against a fresh execution context
6. Report one outcome per effect, in effect order

A failing effect never stops its siblings: resolution, migration and script
errors are caught here and reported as outcomes.
"""

import copy
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from metis_engine.constants import Trigger
from metis_engine.executor.context import EffectExecutionContext
from metis_engine.executor.effects import ActionRecord, EffectRecord, EffectSource
from metis_engine.sessions.base import ActionExecution, SessionHandle
from metis_engine.stores.target_env_store import StoreRegistry
from metis_engine.targets.registry import TargetEnvironmentRegistry
from metis_engine.targets.target import Target
from metis_engine.utils.errors import (
    EngineError,
    ErrorCode,
    ErrorResponse,
    MigrationError,
    ResolutionError,
    ScriptExecutionError,
)

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    RESOLUTION_FAILED = "resolution-failed"
    MIGRATION_FAILED = "migration-failed"
    SCRIPT_THREW = "script-threw"
    SKIPPED = "skipped"


@dataclass
class EffectOutcome:
    """Result of one effect within a trigger batch.

    Attributes:
        effect_id: Id of the effect.
        effect_name: Name of the effect.
        trigger: The trigger that fired the batch.
        order: The effect's order within the batch.
        kind: What happened.
        error: The failure, for every kind but success and skipped.
        args: The args the target ran with (after migration and defaults).
        version: The version those args are compatible with.
    """

    effect_id: str
    effect_name: str
    trigger: str
    order: int
    kind: OutcomeKind
    error: Optional[EngineError] = None
    args: Optional[Dict[str, Any]] = None
    version: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS

    def diagnostic(self) -> Optional[ErrorResponse]:
        """Diagnostic naming the offending effect, if it did not succeed."""
        if self.kind == OutcomeKind.SKIPPED:
            return ErrorResponse(
                code=ErrorCode.EXECUTION_ABORTED,
                message="Execution was aborted before this effect ran",
                effect_id=self.effect_id,
                effect_name=self.effect_name,
            )
        if self.error is None:
            return None
        return ErrorResponse.from_exception(self.error, self.effect_id, self.effect_name)

    def to_dict(self) -> Dict[str, Any]:
        diagnostic = self.diagnostic()
        return {
            "effectId": self.effect_id,
            "effectName": self.effect_name,
            "trigger": self.trigger,
            "order": self.order,
            "kind": self.kind.value,
            "version": self.version,
            "args": self.args,
            "error": diagnostic.to_dict() if diagnostic else None,
        }


@dataclass
class ActionOutcome:
    """Result of a full action execution.

    Attributes:
        succeeded: The success roll, or None when aborted before the roll.
        aborted: Whether the execution was aborted at any point.
        outcomes: Outcomes of every batch that ran, in execution order.
    """

    action_key: Optional[str]
    succeeded: Optional[bool]
    aborted: bool
    outcomes: List[EffectOutcome] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actionKey": self.action_key,
            "succeeded": self.succeeded,
            "aborted": self.aborted,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class EffectExecutor:
    """Executes trigger batches and whole action lifecycles.

    Args:
        registry: Where targets are resolved.
        stores: Store partitions handed to execution contexts.
        persist_migrations: Write migrated args/version back onto the effect
            record (and through ``persistence``) instead of migrating on every read.
        persistence: Optional hook with ``save_effect(effect)``.
        log_outcomes: Log a summary line per batch.
        rng: Source of uniform [0, 1) floats for success rolls.
    """

    def __init__(
        self,
        registry: TargetEnvironmentRegistry,
        stores: StoreRegistry,
        persist_migrations: bool = False,
        persistence: Optional[Any] = None,
        log_outcomes: bool = True,
        rng: Callable[[], float] = random.random,
    ):
        self.registry = registry
        self.stores = stores
        self.persist_migrations = persist_migrations
        self.persistence = persistence
        self.log_outcomes = log_outcomes
        self.rng = rng

    async def run_trigger(
        self,
        effects: Sequence[EffectRecord],
        trigger: str,
        session: SessionHandle,
        source: Optional[EffectSource] = None,
        execution: Optional[ActionExecution] = None,
    ) -> List[EffectOutcome]:
        """Execute every effect matching ``trigger``, strictly in order.

        Args:
            effects: All effects of the action (or mission).
            trigger: The firing trigger; legacy names are accepted.
            session: The live session.
            source: The force/node/action hosting the effects.
            execution: When given, effects are skipped once it is aborted.

        Returns:
            One outcome per selected effect, in execution order.
        """
        trigger = Trigger.LEGACY_ALIASES.get(trigger, trigger)
        selected = sorted(
            (effect for effect in effects if effect.trigger == trigger),
            key=lambda effect: effect.order,
        )

        outcomes: List[EffectOutcome] = []
        for effect in selected:
            if execution is not None and execution.aborted:
                logger.debug(f"Skipping effect '{effect.name}' ({effect.id}): execution aborted")
                outcomes.append(
                    EffectOutcome(effect.id, effect.name, trigger, effect.order, OutcomeKind.SKIPPED)
                )
                continue
            outcomes.append(await self.execute_effect(effect, session, source))

        if self.log_outcomes and outcomes:
            failed = sum(1 for o in outcomes if o.kind not in (OutcomeKind.SUCCESS, OutcomeKind.SKIPPED))
            skipped = sum(1 for o in outcomes if o.kind == OutcomeKind.SKIPPED)
            logger.info(
                f"Trigger '{trigger}' in session '{session.session_id}': "
                f"{len(outcomes)} effect(s), {failed} failed, {skipped} skipped"
            )
        return outcomes

    async def execute_effect(
        self,
        effect: EffectRecord,
        session: SessionHandle,
        source: Optional[EffectSource] = None,
    ) -> EffectOutcome:
        """Resolve, migrate and execute a single effect."""

        def outcome(kind: OutcomeKind, **kwargs) -> EffectOutcome:
            return EffectOutcome(effect.id, effect.name, effect.trigger, effect.order, kind, **kwargs)

        target = self.registry.resolve(effect.target_id, effect.environment_id)
        if target is None:
            error = ResolutionError(
                self._unresolved_message(effect),
                target_id=effect.target_id,
                environment_id=None if effect.infers_environment else effect.environment_id,
            )
            self._log_failure(effect, error)
            return outcome(OutcomeKind.RESOLUTION_FAILED, error=error)

        try:
            args, version = self._migrate(effect, target)
        except MigrationError as e:
            self._log_failure(effect, e)
            return outcome(OutcomeKind.MIGRATION_FAILED, error=e)

        args = target.prepare_args(args)
        context = EffectExecutionContext(effect, args, target, session, self.stores, source)
        logger.debug(
            f"Executing effect '{effect.name}' ({effect.id}) -> "
            f"{target.environment_id}/{target.id}",
            extra={"effect_id": effect.id},
        )

        try:
            await target.execute(context)
        except Exception as e:
            error = (
                e
                if isinstance(e, EngineError)
                else ScriptExecutionError(f"Target '{target.id}' raised: {e}", cause=e)
            )
            self._log_failure(effect, error)
            return outcome(OutcomeKind.SCRIPT_THREW, error=error, args=args, version=version)

        return outcome(OutcomeKind.SUCCESS, args=args, version=version)

    async def execute_action(
        self,
        action: ActionRecord,
        session: SessionHandle,
        execution: Optional[ActionExecution] = None,
    ) -> ActionOutcome:
        """Run an action's full lifecycle.

        Fires the initiation batch, waits out the action's process time,
        rolls against its success chance and fires the success or failure
        batch. Once the execution is aborted nothing further is dispatched.

        Raises:
            ValueError: If the action record lacks its force/node/action keys.
            SessionLookupError: If the action does not exist in the session.
        """
        source = action.source
        if not (source.force_key and source.node_key and source.action_key):
            raise ValueError("Action record must carry forceKey, nodeKey and actionKey")

        # Fails fast for unknown actions, before anything is dispatched.
        session.get_action(source.force_key, source.node_key, source.action_key)

        if execution is None:
            execution = ActionExecution(source.force_key, source.node_key, source.action_key)
        session.register_execution(execution)

        outcomes: List[EffectOutcome] = []
        try:
            outcomes += await self.run_trigger(
                action.effects, Trigger.EXECUTION_INITIATION, session, source, execution
            )

            # Initiation effects may have changed the action's parameters.
            params = session.get_action(source.force_key, source.node_key, source.action_key)
            if not await execution.wait(params.process_time_ms / 1000):
                logger.info(f"Execution of action '{source.action_key}' aborted during processing")
                return ActionOutcome(source.action_key, None, True, outcomes)

            succeeded = self.rng() < params.success_chance
            trigger = Trigger.EXECUTION_SUCCESS if succeeded else Trigger.EXECUTION_FAILURE
            outcomes += await self.run_trigger(action.effects, trigger, session, source, execution)
            return ActionOutcome(source.action_key, succeeded, execution.aborted, outcomes)
        finally:
            session.unregister_execution(execution)

    def _migrate(self, effect: EffectRecord, target: Target) -> Tuple[Dict[str, Any], str]:
        recorded = effect.target_environment_version
        if not target.needs_migration(recorded):
            return effect.args, recorded

        result = target.migrate(recorded, effect.args)
        if self.persist_migrations:
            self._persist(effect, result.args, result.version)
        return result.args, result.version

    def _persist(self, effect: EffectRecord, args: Dict[str, Any], version: str) -> None:
        """Write migrated args back to the record, and through the persistence hook.

        The record is only updated once the hook has saved it. A failed save
        is logged; the effect still runs with the migrated args.
        """
        if self.persistence is not None:
            migrated = effect.model_copy(
                update={"args": copy.deepcopy(args), "target_environment_version": version}
            )
            try:
                self.persistence.save_effect(migrated)
            except Exception as e:
                logger.warning(
                    f"Could not persist migrated effect '{effect.name}' ({effect.id}): {e}",
                    extra={"effect_id": effect.id},
                )
                return
        effect.args = copy.deepcopy(args)
        effect.target_environment_version = version

    def _unresolved_message(self, effect: EffectRecord) -> str:
        if effect.infers_environment:
            return (
                f"Could not infer a unique target with ID '{effect.target_id}' "
                f"across registered environments"
            )
        if not self.registry.has(effect.environment_id):
            return f"Target environment '{effect.environment_id}' is not registered"
        return (
            f"Target '{effect.target_id}' not found in environment "
            f"'{effect.environment_id}'"
        )

    def _log_failure(self, effect: EffectRecord, error: EngineError) -> None:
        logger.error(
            f"Effect '{effect.name}' ({effect.id}) failed: {error}",
            extra={"effect_id": effect.id},
        )
