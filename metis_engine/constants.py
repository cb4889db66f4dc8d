"""METIS engine constants

Centralized constants for the user-space directory name, effect triggers,
store partitions and the built-in target environment.
"""

# The name of the working directory used in user and project space.
# Every space follows: base_path / METIS_DIR / {config,logs}
METIS_DIR = ".metis"


class Trigger:
    """Effect trigger constants."""

    EXECUTION_INITIATION = "execution-initiation"
    EXECUTION_SUCCESS = "execution-success"
    EXECUTION_FAILURE = "execution-failure"

    SESSION_SETUP = "session-setup"
    SESSION_START = "session-start"
    SESSION_TEARDOWN = "session-teardown"

    EXECUTION = [EXECUTION_INITIATION, EXECUTION_SUCCESS, EXECUTION_FAILURE]
    SESSION = [SESSION_SETUP, SESSION_START, SESSION_TEARDOWN]
    ALL = EXECUTION + SESSION

    # Trigger names stored by older mission documents.
    LEGACY_ALIASES = {
        "immediate": EXECUTION_INITIATION,
        "success": EXECUTION_SUCCESS,
        "failure": EXECUTION_FAILURE,
    }


class HookMethod:
    """Target environment lifecycle hook methods."""

    SETUP = "environment-setup"
    TEARDOWN = "environment-teardown"

    ALL = [SETUP, TEARDOWN]


# `environmentId` value meaning the target should be inferred from its ID alone.
ENVIRONMENT_ID_INFER = "INFER"

# Partition name for the session-wide store shared by all environments.
GLOBAL_PARTITION = "<global>"

# Placeholder keys understood by the execution context.
SELF_KEY = "self"
ALL_ACTIONS_KEY = "all"

METIS_ENVIRONMENT_ID = "metis"


class MetisTargetId:
    """Target IDs for the built-in METIS target environment."""

    RESOURCE_POOL = "resource-pool"
    OUTPUT = "output"
    DELAY = "delay"
    OPEN_STATE = "open-state"
    SUCCESS_CHANCE_MOD = "success-chance-mod"
    PROCESS_TIME_MOD = "process-time-mod"
    FILE_ACCESS = "file-access"

    ALL = [
        RESOURCE_POOL,
        OUTPUT,
        DELAY,
        OPEN_STATE,
        SUCCESS_CHANCE_MOD,
        PROCESS_TIME_MOD,
        FILE_ACCESS,
    ]
