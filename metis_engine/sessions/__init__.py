"""Session handle contract and the in-memory mission session."""

from metis_engine.sessions.base import ActionExecution, ActionParameters, SessionHandle
from metis_engine.sessions.mission_session import (
    MissionAction,
    MissionFile,
    MissionForce,
    MissionNode,
    MissionSession,
    load_session,
)

__all__ = [
    "ActionExecution",
    "ActionParameters",
    "SessionHandle",
    "MissionAction",
    "MissionFile",
    "MissionForce",
    "MissionNode",
    "MissionSession",
    "load_session",
]
