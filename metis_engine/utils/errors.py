"""Error types for the METIS effect engine.

Runtime failures (an effect that cannot resolve, migrate or run) are caught at
the per-effect boundary of the executor and reported as outcomes. These
exceptions describe *why* an effect failed:
- ResolutionError: target/environment not found or ambiguous
- MigrationError: a migration transform failed or a version is malformed
- ScriptExecutionError: a target script raised
- ArgumentValidationError: a script rejected its arguments

Registration-time errors (InvalidVersionError while building a migration
registry) are programming errors and propagate to the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base exception for effect engine failures.

    Attributes:
        message: Error description.
        cause: Optional underlying exception being wrapped.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        """Initialize EngineError.

        Args:
            message: Description of the error.
            cause: Optional exception that triggered this error.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause


class ResolutionError(EngineError):
    """No single target could be resolved for an effect.

    Attributes:
        target_id: The target the effect points at.
        environment_id: The environment the effect points at (None when inferred).
    """

    def __init__(
        self,
        message: str,
        target_id: Optional[str] = None,
        environment_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.target_id = target_id
        self.environment_id = environment_id


class MigrationError(EngineError):
    """A migration could not be registered or applied.

    Attributes:
        version: The migration (or recorded) version involved, if known.
    """

    def __init__(
        self,
        message: str,
        version: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)
        self.version = version


class InvalidVersionError(MigrationError):
    """A version string is not a valid semantic version."""

    def __init__(self, version: Any):
        super().__init__(
            f"Invalid semantic version: {version!r}", version=str(version)
        )


class ScriptExecutionError(EngineError):
    """A target script raised (or rejected) while executing an effect."""


class ArgumentValidationError(ScriptExecutionError):
    """An effect's arguments do not satisfy its target's schema.

    Raised by target scripts (through ``validate_args``), by convention,
    rather than by a separate validation layer.

    Attributes:
        arg_id: The offending argument, if a single one is to blame.
    """

    def __init__(self, message: str, arg_id: Optional[str] = None):
        super().__init__(message)
        self.arg_id = arg_id


class SessionLookupError(EngineError):
    """A force, node, action or file key does not exist in the session."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ActionFileError(EngineError):
    """An action file could not be read or parsed.

    Attributes:
        path: The offending file.
    """

    def __init__(self, message: str, path: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause)
        self.path = path


class ErrorCode(Enum):
    """Standardized error codes used in effect diagnostics."""

    RESOLUTION_FAILED = "RESOLUTION_FAILED"
    MIGRATION_FAILED = "MIGRATION_FAILED"
    INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
    SCRIPT_FAILED = "SCRIPT_FAILED"
    EXECUTION_ABORTED = "EXECUTION_ABORTED"


@dataclass
class ErrorResponse:
    """Diagnostic identifying an offending effect, for the surrounding UI."""

    code: ErrorCode
    message: str
    effect_id: Optional[str] = None
    effect_name: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "effectId": self.effect_id,
            "effectName": self.effect_name,
            "details": self.details,
        }

    @classmethod
    def from_exception(
        cls,
        error: BaseException,
        effect_id: Optional[str] = None,
        effect_name: Optional[str] = None,
    ) -> "ErrorResponse":
        """Map an engine exception onto its error code."""
        if isinstance(error, ResolutionError):
            code = ErrorCode.RESOLUTION_FAILED
        elif isinstance(error, MigrationError):
            code = ErrorCode.MIGRATION_FAILED
        elif isinstance(error, ArgumentValidationError):
            code = ErrorCode.INVALID_ARGUMENTS
        else:
            code = ErrorCode.SCRIPT_FAILED

        details = None
        cause = getattr(error, "cause", None)
        if cause is not None:
            details = {"cause": f"{type(cause).__name__}: {cause}"}

        return cls(
            code=code,
            message=str(error),
            effect_id=effect_id,
            effect_name=effect_name,
            details=details,
        )
