"""Effect execution context.

The only object a target script receives. It exposes a fixed set of session
mutation primitives plus read access to the effect being executed and to the
script's store partitions. Mutations go straight to the session, so later
effects in the same batch observe them immediately.

Key placeholders:
- ``"self"`` resolves to the effect's source force/node/action.
- ``"all"`` (action keys only) targets every action of the node.
"""

import copy
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from metis_engine.constants import ALL_ACTIONS_KEY, SELF_KEY
from metis_engine.executor.effects import EffectRecord, EffectSource
from metis_engine.sessions.base import SessionHandle
from metis_engine.stores.target_env_store import StoreRegistry, TargetEnvStore
from metis_engine.targets.args import ArgType
from metis_engine.targets.target import Target
from metis_engine.utils.errors import SessionLookupError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectView:
    """Read-only view of the effect being executed."""

    id: str
    local_key: str
    name: str
    description: str
    trigger: str
    order: int
    target_id: str
    environment_id: Optional[str]
    version: str
    args: Mapping[str, Any]
    source: EffectSource


def _context_args(target: Target, args: dict) -> Mapping[str, Any]:
    """Copy of ``args`` with display-only keys stripped from component args."""
    result = copy.deepcopy(args)
    for spec in target.arg_schema:
        value = result.get(spec.id)
        if spec.type in ArgType.COMPONENT_KEYS and isinstance(value, dict):
            for key in ArgType.DISPLAY_KEYS:
                value.pop(key, None)
    return MappingProxyType(result)


class EffectExecutionContext:
    """Mediates every session mutation a target script may perform.

    Args:
        effect: The effect being executed.
        args: The effect's final (migrated, defaulted) arguments.
        target: The resolved target.
        session: The live session.
        stores: Store partitions, addressed by session and environment.
        source: The force/node/action hosting the effect.
    """

    def __init__(
        self,
        effect: EffectRecord,
        args: dict,
        target: Target,
        session: SessionHandle,
        stores: StoreRegistry,
        source: Optional[EffectSource] = None,
    ):
        self._session = session
        self._stores = stores
        self._target = target
        self._source = source or EffectSource()
        self._effect = EffectView(
            id=effect.id,
            local_key=effect.local_key,
            name=effect.name,
            description=effect.description,
            trigger=effect.trigger,
            order=effect.order,
            target_id=target.id,
            environment_id=target.environment_id,
            version=target.version,
            args=_context_args(target, args),
            source=self._source,
        )

    @property
    def effect(self) -> EffectView:
        return self._effect

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def local_store(self) -> TargetEnvStore:
        """Partition shared by this environment's scripts within the session."""
        return self._stores.get_store(self.session_id, self._target.environment_id)

    @property
    def global_store(self) -> TargetEnvStore:
        """Partition shared by every environment within the session."""
        return self._stores.get_store(self.session_id)

    # Key resolution

    def _source_key(self, kind: str) -> str:
        key = getattr(self._source, f"{kind}_key")
        if key is None:
            raise SessionLookupError(
                f"Effect '{self._effect.name}' has no source {kind} to resolve '{SELF_KEY}'",
                key=SELF_KEY,
            )
        return key

    def _resolve_force(self, force_key: str) -> str:
        if force_key == SELF_KEY:
            return self._source_key("force")
        return force_key

    def _require_force(self, force_key: str) -> str:
        force = self._resolve_force(force_key)
        if not self._session.has_force(force):
            raise SessionLookupError(
                f"Could not find force with key '{force}' in session '{self.session_id}'",
                key=force,
            )
        return force

    def _resolve_node(self, force_key: str, node_key: str) -> Tuple[str, str]:
        if node_key == SELF_KEY:
            return self._source_key("force"), self._source_key("node")
        return self._resolve_force(force_key), node_key

    def _resolve_action(
        self, force_key: str, node_key: str, action_key: str
    ) -> Tuple[str, str, Optional[str]]:
        if action_key == SELF_KEY:
            return self._source_key("force"), self._source_key("node"), self._source_key("action")
        resolved_force, resolved_node = self._resolve_node(force_key, node_key)
        if action_key == ALL_ACTIONS_KEY:
            return resolved_force, resolved_node, None
        return resolved_force, resolved_node, action_key

    def _log(self, message: str) -> None:
        logger.debug(message, extra={"effect_id": self._effect.id})

    # Primitives

    def modify_resource_pool(self, amount: float, force_key: str = SELF_KEY) -> float:
        """Add a signed amount to a force's resource pool.

        Returns:
            The force's new total, after the session's floor policy.
        """
        force = self._resolve_force(force_key)
        total = self._session.modify_resource_pool(force, amount)
        self._log(f"Resource pool of '{force}' {amount:+} -> {total}")
        return total

    def modify_success_chance(
        self,
        delta: float,
        force_key: str = SELF_KEY,
        node_key: str = SELF_KEY,
        action_key: str = ALL_ACTIONS_KEY,
    ) -> None:
        force, node, action = self._resolve_action(force_key, node_key, action_key)
        self._session.modify_success_chance(force, node, action, delta)
        self._log(f"Success chance of {force}/{node}/{action or ALL_ACTIONS_KEY} {delta:+}")

    def modify_process_time(
        self,
        delta_ms: float,
        force_key: str = SELF_KEY,
        node_key: str = SELF_KEY,
        action_key: str = ALL_ACTIONS_KEY,
    ) -> None:
        force, node, action = self._resolve_action(force_key, node_key, action_key)
        self._session.modify_process_time(force, node, action, delta_ms)
        self._log(f"Process time of {force}/{node}/{action or ALL_ACTIONS_KEY} {delta_ms:+}ms")

    def open_node(self, force_key: str = SELF_KEY, node_key: str = SELF_KEY) -> bool:
        """Open a node. Opening an open node is a no-op returning False."""
        force, node = self._resolve_node(force_key, node_key)
        changed = self._session.open_node(force, node)
        self._log(f"Open {force}/{node}: {'opened' if changed else 'already open'}")
        return changed

    def close_node(self, force_key: str = SELF_KEY, node_key: str = SELF_KEY) -> bool:
        """Close a node. Closing a closed node is a no-op returning False."""
        force, node = self._resolve_node(force_key, node_key)
        changed = self._session.close_node(force, node)
        self._log(f"Close {force}/{node}: {'closed' if changed else 'already closed'}")
        return changed

    def grant_file_access(self, file_id: str, force_key: str) -> None:
        force = self._require_force(force_key)
        self._session.update_file_access(file_id, force, True)
        self._log(f"Granted '{force}' access to file '{file_id}'")

    def revoke_file_access(self, file_id: str, force_key: str) -> None:
        force = self._require_force(force_key)
        self._session.update_file_access(file_id, force, False)
        self._log(f"Revoked '{force}' access to file '{file_id}'")

    def send_output(self, message: str, to: Optional[str] = None) -> None:
        """Append ``message`` to a force's output, or broadcast when ``to`` is None."""
        force = self._resolve_force(to) if to is not None else None
        self._session.send_output(message, force_key=force)
        self._log(f"Output to {force or 'all forces'}")
