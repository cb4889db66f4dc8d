"""The built-in METIS target environment."""

from metis_engine.constants import METIS_ENVIRONMENT_ID
from metis_engine.environments.metis.action_mods import ProcessTimeModTarget, SuccessChanceModTarget
from metis_engine.environments.metis.delay import DelayTarget
from metis_engine.environments.metis.file_access import FileAccessTarget
from metis_engine.environments.metis.open_state import OpenStateTarget
from metis_engine.environments.metis.output import OutputTarget
from metis_engine.environments.metis.resource_pool import ResourcePoolTarget
from metis_engine.targets.environment import TargetEnvironment

METIS_VERSION = "1.0.0"


def create_metis_environment() -> TargetEnvironment:
    """Build a fresh METIS environment with its own target instances."""
    return TargetEnvironment(
        id=METIS_ENVIRONMENT_ID,
        name="METIS",
        version=METIS_VERSION,
        description="Targets that manipulate the mission itself.",
        targets=[
            ResourcePoolTarget(),
            OutputTarget(),
            DelayTarget(),
            OpenStateTarget(),
            SuccessChanceModTarget(),
            ProcessTimeModTarget(),
            FileAccessTarget(),
        ],
    )


__all__ = [
    "METIS_VERSION",
    "create_metis_environment",
    "DelayTarget",
    "FileAccessTarget",
    "OpenStateTarget",
    "OutputTarget",
    "ProcessTimeModTarget",
    "ResourcePoolTarget",
    "SuccessChanceModTarget",
]
