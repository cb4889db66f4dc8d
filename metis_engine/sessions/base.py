"""Session handle contract.

The engine never touches session internals directly. Everything it (and the
execution context) needs from a live session is declared on ``SessionHandle``;
all lookups are by force/node/action key strings and raise
``SessionLookupError`` when a key does not resolve.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ActionParameters:
    """Live, mutable parameters of one action."""

    success_chance: float
    process_time_ms: float


@dataclass
class ActionExecution:
    """One in-flight execution of an action.

    Carries the abort flag the executor checks before every effect. The
    session aborts it when the action's node, or an ancestor, closes.
    """

    force_key: str
    node_key: str
    action_key: str
    _aborted: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def abort(self) -> None:
        self._aborted.set()

    async def wait(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless aborted first.

        Returns:
            True if the full time elapsed, False if the execution was aborted.
        """
        if self.aborted:
            return False
        try:
            await asyncio.wait_for(self._aborted.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return True
        return False


class SessionHandle(ABC):
    """Mutation surface a live session exposes to the engine."""

    @property
    @abstractmethod
    def session_id(self) -> str:
        """Unique id of the session."""

    @abstractmethod
    def has_force(self, force_key: str) -> bool:
        """Whether a force with this key exists."""

    @abstractmethod
    def get_action(self, force_key: str, node_key: str, action_key: str) -> ActionParameters:
        """Live parameters of an action."""

    @abstractmethod
    def get_file(self, file_id: str) -> Optional[object]:
        """The file with this id, or None."""

    @abstractmethod
    def has_access(self, file_id: str, force_key: str) -> bool:
        """Whether a force can access a file."""

    @abstractmethod
    def modify_resource_pool(self, force_key: str, amount: float) -> float:
        """Add a signed amount to a force's resources and return the new total."""

    @abstractmethod
    def modify_success_chance(
        self, force_key: str, node_key: str, action_key: Optional[str], delta: float
    ) -> None:
        """Apply ``delta`` to one action, or to every action of the node when
        ``action_key`` is None. Results are clamped to [0, 1]."""

    @abstractmethod
    def modify_process_time(
        self, force_key: str, node_key: str, action_key: Optional[str], delta_ms: float
    ) -> None:
        """Like ``modify_success_chance``; results are clamped to [0, inf)."""

    @abstractmethod
    def open_node(self, force_key: str, node_key: str) -> bool:
        """Open a node. Returns False when it was already open."""

    @abstractmethod
    def close_node(self, force_key: str, node_key: str) -> bool:
        """Close a node, aborting executions on its descendants.

        Returns False when it was already closed.
        """

    @abstractmethod
    def update_file_access(self, file_id: str, force_key: str, granted: bool) -> None:
        """Grant or revoke a force's access to a file."""

    @abstractmethod
    def send_output(
        self, message: str, force_key: Optional[str] = None, prefix: Optional[str] = None
    ) -> None:
        """Append to one force's output log, or to every force's when
        ``force_key`` is None."""

    @abstractmethod
    def register_execution(self, execution: ActionExecution) -> None:
        """Track an execution so closing an ancestor node can abort it."""

    @abstractmethod
    def unregister_execution(self, execution: ActionExecution) -> None:
        """Stop tracking a finished execution."""

    @property
    @abstractmethod
    def pending_executions(self) -> List[ActionExecution]:
        """Executions currently registered."""
