"""Per-session, per-environment key-value memory for target scripts.

Each ``(session_id, environment_id)`` pair addresses its own partition. When
no environment is given, the session-wide global partition is used. There is
no TTL or eviction: partitions live until their owner destroys them, which
the engine does when a session ends.
"""

import logging
from typing import Any, Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar

from metis_engine.constants import GLOBAL_PARTITION

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreState(Generic[T]):
    """A mutable cell holding one stored value.

    Access inside a partition is not serialized. Scripts that await between
    reading and writing should use ``compare_and_set``.
    """

    def __init__(self, value: T):
        self._value = value

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        self._value = value

    def set(self, value: T) -> T:
        self._value = value
        return value

    def update(self, fn: Callable[[T], T]) -> T:
        """Replace the value with ``fn(value)`` and return the new value."""
        self._value = fn(self._value)
        return self._value

    def compare_and_set(self, expected: T, new: T) -> bool:
        """Set ``new`` only if the current value equals ``expected``."""
        if self._value != expected:
            return False
        self._value = new
        return True

    def __repr__(self) -> str:
        return f"StoreState({self._value!r})"


class TargetEnvStore:
    """One isolated partition of store state."""

    def __init__(self):
        self._store: Dict[str, StoreState[Any]] = {}

    def use(self, key: str, default: Any = None) -> StoreState[Any]:
        """Get the state for ``key``, creating it with ``default`` if absent."""
        if key not in self._store:
            self._store[key] = StoreState(default)
        return self._store[key]

    def has(self, key: str) -> bool:
        return key in self._store

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns whether it existed."""
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._store.keys()))

    def __len__(self) -> int:
        return len(self._store)


class StoreRegistry:
    """All store partitions, keyed by ``(session, environment)``.

    Args:
        global_partition: Partition name used when no environment is given.
            It must not be the id of a registered environment.
    """

    def __init__(self, global_partition: str = GLOBAL_PARTITION):
        self.global_partition = global_partition
        self._stores: Dict[Tuple[str, str], TargetEnvStore] = {}

    def _key(self, session_id: str, environment_id: Optional[str] = None) -> Tuple[str, str]:
        return (session_id, environment_id or self.global_partition)

    def get_store(self, session_id: str, environment_id: Optional[str] = None) -> TargetEnvStore:
        """Get (or create) the partition for a session and environment."""
        key = self._key(session_id, environment_id)
        if key not in self._stores:
            self._stores[key] = TargetEnvStore()
        return self._stores[key]

    def has_store(self, session_id: str, environment_id: Optional[str] = None) -> bool:
        return self._key(session_id, environment_id) in self._stores

    def destroy_store(self, session_id: str, environment_id: Optional[str] = None) -> None:
        """Clear and remove one partition."""
        store = self._stores.pop(self._key(session_id, environment_id), None)
        if store is not None:
            store.clear()

    def clean_up(self, session_id: str) -> int:
        """Clear and remove every partition of a session.

        Returns:
            Number of partitions removed.
        """
        keys = [key for key in self._stores if key[0] == session_id]
        for key in keys:
            self._stores.pop(key).clear()
        if keys:
            logger.debug(f"Destroyed {len(keys)} store partition(s) for session '{session_id}'")
        return len(keys)

    def __len__(self) -> int:
        return len(self._stores)
