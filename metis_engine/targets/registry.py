"""Target environment registry.

Catalog of installed target environments. Constructed explicitly and passed
to the executor; tests build one per case.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from metis_engine.constants import ENVIRONMENT_ID_INFER
from metis_engine.targets.environment import TargetEnvironment
from metis_engine.targets.target import Target

logger = logging.getLogger(__name__)


class TargetEnvironmentRegistry:
    """Resolves ``(target_id, environment_id)`` pairs to targets.

    Absence is always reported as ``None`` (or an empty list), never raised.
    """

    def __init__(self):
        self._environments: Dict[str, TargetEnvironment] = {}

    @property
    def populated(self) -> bool:
        """Whether at least one environment is registered."""
        return bool(self._environments)

    def register(self, environment: TargetEnvironment) -> None:
        """Register an environment.

        Registering an id that already exists logs a warning and is skipped;
        the existing environment is kept.
        """
        if self.has(environment):
            logger.warning(
                f"Environment with ID '{environment.id}' already exists in the "
                f"registry. Skipping registration..."
            )
            return
        self._environments[environment.id] = environment
        logger.debug(
            f"Registered environment '{environment.id}' v{environment.version} "
            f"({len(environment.targets)} targets)"
        )

    def has(self, environment: Union[str, TargetEnvironment]) -> bool:
        env_id = environment if isinstance(environment, str) else environment.id
        return env_id in self._environments

    def get(self, environment_id: Optional[str]) -> Optional[TargetEnvironment]:
        if not environment_id:
            return None
        return self._environments.get(environment_id)

    def get_all(self) -> List[TargetEnvironment]:
        return list(self._environments.values())

    def get_target(self, target_id: Optional[str], environment_id: Optional[str]) -> Optional[Target]:
        environment = self.get(environment_id)
        if environment is None or not target_id:
            return None
        return environment.get_target(target_id)

    def infer_target(self, target_id: str) -> Optional[Target]:
        """Find a target by id alone.

        Returns a target only when exactly one environment contains the id;
        ambiguous ids resolve to None.
        """
        found = [
            target
            for target in (env.get_target(target_id) for env in self._environments.values())
            if target is not None
        ]
        if len(found) == 1:
            return found[0]
        if len(found) > 1:
            logger.debug(
                f"Target ID '{target_id}' is ambiguous across environments: "
                f"{[t.environment_id for t in found]}"
            )
        return None

    def get_targets(self, environment_id: str) -> List[Target]:
        environment = self.get(environment_id)
        if environment is None:
            return []
        return environment.targets

    def resolve(self, target_id: str, environment_id: Optional[str] = None) -> Optional[Target]:
        """Resolve a target, inferring its environment when none is given."""
        if not environment_id or environment_id == ENVIRONMENT_ID_INFER:
            return self.infer_target(target_id)
        return self.get_target(target_id, environment_id)

    def clear(self) -> None:
        self._environments.clear()

    def to_json(self) -> List[Dict[str, Any]]:
        return [environment.to_json() for environment in self.get_all()]

    def __len__(self) -> int:
        return len(self._environments)
