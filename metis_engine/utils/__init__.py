"""METIS engine utility modules."""

from metis_engine.utils.config_loader import ConfigLoader, EngineConfigLoader, get_engine_config_loader
from metis_engine.utils.errors import (
    ActionFileError,
    ArgumentValidationError,
    EngineError,
    ErrorCode,
    ErrorResponse,
    InvalidVersionError,
    MigrationError,
    ResolutionError,
    ScriptExecutionError,
    SessionLookupError,
)
from metis_engine.utils.logger import configure_logging
from metis_engine.utils.path_utils import get_user_space, get_user_metis_path
from metis_engine.utils.versions import (
    SemanticVersion,
    is_valid_version,
    parse_recorded_version,
    parse_version,
)

__all__ = [
    "ConfigLoader",
    "EngineConfigLoader",
    "get_engine_config_loader",
    "ActionFileError",
    "ArgumentValidationError",
    "EngineError",
    "ErrorCode",
    "ErrorResponse",
    "InvalidVersionError",
    "MigrationError",
    "ResolutionError",
    "ScriptExecutionError",
    "SessionLookupError",
    "configure_logging",
    "get_user_space",
    "get_user_metis_path",
    "SemanticVersion",
    "is_valid_version",
    "parse_recorded_version",
    "parse_version",
]
