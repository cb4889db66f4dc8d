"""Target environments - versioned bundles of targets with lifecycle hooks."""

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from metis_engine.constants import HookMethod
from metis_engine.targets.target import Target
from metis_engine.utils.versions import parse_version

if TYPE_CHECKING:
    from metis_engine.sessions.base import SessionHandle
    from metis_engine.stores.target_env_store import StoreRegistry, TargetEnvStore

logger = logging.getLogger(__name__)


class EnvHookContext:
    """What a setup/teardown hook may see: the session, its environment and stores."""

    def __init__(
        self,
        session: "SessionHandle",
        environment: "TargetEnvironment",
        stores: "StoreRegistry",
    ):
        self.session = session
        self.environment = environment
        self._stores = stores

    @property
    def session_id(self) -> str:
        return self.session.session_id

    @property
    def local_store(self) -> "TargetEnvStore":
        return self._stores.get_store(self.session_id, self.environment.id)

    @property
    def global_store(self) -> "TargetEnvStore":
        return self._stores.get_store(self.session_id)


HookCallback = Callable[[EnvHookContext], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class EnvHook:
    """A callback bound to one lifecycle method."""

    method: str
    callback: HookCallback

    def __post_init__(self):
        if self.method not in HookMethod.ALL:
            raise ValueError(f"Unknown hook method: {self.method}")

    async def invoke(self, context: EnvHookContext) -> None:
        result = self.callback(context)
        if inspect.isawaitable(result):
            await result


@dataclass
class EnvHookResult:
    """Result of running one hook.

    Attributes:
        status: "success", "failure" or "skipped".
        environment_id: The environment that owns the hook.
        error: The exception raised by the hook (failure only).
    """

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"

    status: str
    environment_id: str
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status != self.FAILURE

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status,
            "environmentId": self.environment_id,
            "error": None,
        }
        if self.error is not None:
            data["error"] = {
                "name": type(self.error).__name__,
                "message": str(self.error),
            }
        return data


class TargetEnvironment:
    """A named, versioned collection of targets.

    Owns its targets exclusively: constructing an environment binds each
    target's ``environment`` back-reference.

    Raises:
        ValueError: If two targets share an id.
        InvalidVersionError: If ``version`` is not a semantic version.
    """

    def __init__(
        self,
        id: str,
        name: str,
        version: str,
        targets: Sequence[Target] = (),
        description: str = "",
        hooks: Sequence[EnvHook] = (),
    ):
        parse_version(version)

        self.id = id
        self.name = name
        self.description = description
        self.version = version
        self.hooks: List[EnvHook] = list(hooks)
        self._targets: Dict[str, Target] = {}

        for target in targets:
            if target.id in self._targets:
                raise ValueError(
                    f"Duplicate target ID '{target.id}' found in target environment "
                    f"'{self.name}'. Each target must have a unique ID."
                )
            if target.environment is not None and target.environment is not self:
                raise ValueError(
                    f"Target '{target.id}' already belongs to environment "
                    f"'{target.environment.id}'"
                )
            target.environment = self
            self._targets[target.id] = target

    @property
    def targets(self) -> List[Target]:
        return list(self._targets.values())

    def get_target(self, target_id: str) -> Optional[Target]:
        return self._targets.get(target_id)

    def add_hook(self, method: str, callback: HookCallback) -> "TargetEnvironment":
        self.hooks.append(EnvHook(method, callback))
        return self

    async def _invoke(
        self, method: str, session: "SessionHandle", stores: "StoreRegistry"
    ) -> List[EnvHookResult]:
        """Run every hook registered for ``method``, in order.

        After the first failure, remaining hooks are reported as skipped.
        """
        results: List[EnvHookResult] = []
        error_occurred = False

        for hook in self.hooks:
            if hook.method != method:
                continue
            if error_occurred:
                results.append(EnvHookResult(EnvHookResult.SKIPPED, self.id))
                continue
            try:
                await hook.invoke(EnvHookContext(session, self, stores))
                results.append(EnvHookResult(EnvHookResult.SUCCESS, self.id))
            except Exception as e:
                error_occurred = True
                logger.error(f"{method} hook failed for environment '{self.id}': {e}")
                results.append(EnvHookResult(EnvHookResult.FAILURE, self.id, e))

        return results

    async def set_up(self, session: "SessionHandle", stores: "StoreRegistry") -> List[EnvHookResult]:
        return await self._invoke(HookMethod.SETUP, session, stores)

    async def tear_down(self, session: "SessionHandle", stores: "StoreRegistry") -> List[EnvHookResult]:
        return await self._invoke(HookMethod.TEARDOWN, session, stores)

    def to_json(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "targets": [target.to_json() for target in self.targets],
        }

    def __repr__(self) -> str:
        return f"TargetEnvironment(id={self.id!r}, version={self.version!r}, targets={len(self._targets)})"
