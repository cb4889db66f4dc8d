"""In-memory mission session.

A self-contained ``SessionHandle`` backed by plain dataclasses. Used by the
CLI (loaded from a YAML or JSON snapshot) and by tests.

Snapshot format:
    sessionId: s1
    forces:
      - key: f1
        name: Friendly Force
        resources: 10
        allowNegativeResources: false
        nodes:
          - key: n1
            name: Recon
            opened: false
            actions:
              - key: a1
                successChance: 0.5
                processTime: 1000
            children: [...]
    files:
      - id: file-1
        name: Briefing
        access: [f1]
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set

import yaml

from metis_engine.sessions.base import ActionExecution, ActionParameters, SessionHandle
from metis_engine.utils.errors import SessionLookupError

logger = logging.getLogger(__name__)

GLOBAL_OUTPUT_PREFIX = "Global"


@dataclass
class MissionAction:
    key: str
    name: str
    parameters: ActionParameters


@dataclass
class MissionNode:
    key: str
    name: str
    force_key: str
    parent_key: Optional[str] = None
    opened: bool = False
    children: List[str] = field(default_factory=list)
    actions: Dict[str, MissionAction] = field(default_factory=dict)


@dataclass
class OutputMessage:
    prefix: str
    message: str


@dataclass
class MissionForce:
    key: str
    name: str
    resources: float = 0
    allow_negative_resources: bool = False
    output_prefix: str = ""
    nodes: Dict[str, MissionNode] = field(default_factory=dict)
    output: List[OutputMessage] = field(default_factory=list)


@dataclass
class MissionFile:
    id: str
    name: str
    access: Set[str] = field(default_factory=set)


class MissionSession(SessionHandle):
    """Session state held in memory."""

    def __init__(
        self,
        session_id: str,
        forces: Optional[List[MissionForce]] = None,
        files: Optional[List[MissionFile]] = None,
    ):
        self._session_id = session_id
        self.forces: Dict[str, MissionForce] = {f.key: f for f in forces or []}
        self.files: Dict[str, MissionFile] = {f.id: f for f in files or []}
        self._executions: List[ActionExecution] = []

    @property
    def session_id(self) -> str:
        return self._session_id

    # Lookups

    def get_force(self, force_key: str) -> MissionForce:
        force = self.forces.get(force_key)
        if force is None:
            raise SessionLookupError(
                f"Could not find force with key '{force_key}' in session '{self.session_id}'",
                key=force_key,
            )
        return force

    def has_force(self, force_key: str) -> bool:
        return force_key in self.forces

    def get_node(self, force_key: str, node_key: str) -> MissionNode:
        node = self.get_force(force_key).nodes.get(node_key)
        if node is None:
            raise SessionLookupError(
                f"Could not find node with keys {{forceKey: '{force_key}', "
                f"nodeKey: '{node_key}'}} in session '{self.session_id}'",
                key=node_key,
            )
        return node

    def _get_action(self, force_key: str, node_key: str, action_key: str) -> MissionAction:
        action = self.get_node(force_key, node_key).actions.get(action_key)
        if action is None:
            raise SessionLookupError(
                f"Could not find action with keys {{forceKey: '{force_key}', "
                f"nodeKey: '{node_key}', actionKey: '{action_key}'}} in session "
                f"'{self.session_id}'",
                key=action_key,
            )
        return action

    def get_action(self, force_key: str, node_key: str, action_key: str) -> ActionParameters:
        return self._get_action(force_key, node_key, action_key).parameters

    def get_file(self, file_id: str) -> Optional[MissionFile]:
        return self.files.get(file_id)

    def _require_file(self, file_id: str) -> MissionFile:
        file = self.get_file(file_id)
        if file is None:
            raise SessionLookupError(
                f"Could not find file with ID '{file_id}' in session '{self.session_id}'",
                key=file_id,
            )
        return file

    def has_access(self, file_id: str, force_key: str) -> bool:
        return force_key in self._require_file(file_id).access

    def descendants(self, force_key: str, node_key: str) -> Iterator[MissionNode]:
        force = self.get_force(force_key)
        stack = list(self.get_node(force_key, node_key).children)
        while stack:
            child = force.nodes[stack.pop()]
            yield child
            stack.extend(child.children)

    # Mutations

    def modify_resource_pool(self, force_key: str, amount: float) -> float:
        force = self.get_force(force_key)
        total = force.resources + amount
        if total < 0 and not force.allow_negative_resources:
            total = 0
        force.resources = total
        return total

    def _target_actions(
        self, force_key: str, node_key: str, action_key: Optional[str]
    ) -> List[MissionAction]:
        if action_key is not None:
            return [self._get_action(force_key, node_key, action_key)]
        return list(self.get_node(force_key, node_key).actions.values())

    def modify_success_chance(
        self, force_key: str, node_key: str, action_key: Optional[str], delta: float
    ) -> None:
        for action in self._target_actions(force_key, node_key, action_key):
            chance = action.parameters.success_chance + delta
            action.parameters.success_chance = min(max(chance, 0.0), 1.0)

    def modify_process_time(
        self, force_key: str, node_key: str, action_key: Optional[str], delta_ms: float
    ) -> None:
        for action in self._target_actions(force_key, node_key, action_key):
            action.parameters.process_time_ms = max(action.parameters.process_time_ms + delta_ms, 0)

    def open_node(self, force_key: str, node_key: str) -> bool:
        node = self.get_node(force_key, node_key)
        if node.opened:
            return False
        node.opened = True
        return True

    def close_node(self, force_key: str, node_key: str) -> bool:
        node = self.get_node(force_key, node_key)
        if not node.opened:
            return False
        node.opened = False

        closed = {(force_key, d.key) for d in self.descendants(force_key, node_key)}
        for execution in list(self._executions):
            if (execution.force_key, execution.node_key) in closed:
                logger.info(
                    f"Aborting execution of action '{execution.action_key}' on "
                    f"node '{execution.node_key}': ancestor '{node_key}' closed"
                )
                execution.abort()
        return True

    def update_file_access(self, file_id: str, force_key: str, granted: bool) -> None:
        file = self._require_file(file_id)
        self.get_force(force_key)
        if granted:
            file.access.add(force_key)
        else:
            file.access.discard(force_key)

    def send_output(
        self, message: str, force_key: Optional[str] = None, prefix: Optional[str] = None
    ) -> None:
        if force_key is None:
            for force in self.forces.values():
                force.output.append(OutputMessage(prefix or GLOBAL_OUTPUT_PREFIX, message))
            return
        force = self.get_force(force_key)
        force.output.append(OutputMessage(prefix or force.output_prefix or force.name, message))

    # Executions

    def register_execution(self, execution: ActionExecution) -> None:
        self._executions.append(execution)

    def unregister_execution(self, execution: ActionExecution) -> None:
        if execution in self._executions:
            self._executions.remove(execution)

    @property
    def pending_executions(self) -> List[ActionExecution]:
        return list(self._executions)

    # Snapshots

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MissionSession":
        forces = [_force_from_dict(f) for f in data.get("forces", [])]
        files = [
            MissionFile(
                id=f["id"],
                name=f.get("name", f["id"]),
                access=set(f.get("access", [])),
            )
            for f in data.get("files", [])
        ]
        return cls(str(data.get("sessionId", "session")), forces, files)

    def to_dict(self) -> Dict[str, Any]:
        """Live state summary for display (not a loadable snapshot)."""
        return {
            "sessionId": self.session_id,
            "forces": [
                {
                    "key": force.key,
                    "name": force.name,
                    "resources": force.resources,
                    "nodes": {
                        node.key: {
                            "opened": node.opened,
                            "actions": {
                                action.key: {
                                    "successChance": action.parameters.success_chance,
                                    "processTime": action.parameters.process_time_ms,
                                }
                                for action in node.actions.values()
                            },
                        }
                        for node in force.nodes.values()
                    },
                    "output": [f"{o.prefix}: {o.message}" for o in force.output],
                }
                for force in self.forces.values()
            ],
            "files": [
                {"id": file.id, "name": file.name, "access": sorted(file.access)}
                for file in self.files.values()
            ],
        }


def _force_from_dict(data: Dict[str, Any]) -> MissionForce:
    force = MissionForce(
        key=data["key"],
        name=data.get("name", data["key"]),
        resources=data.get("resources", 0),
        allow_negative_resources=bool(data.get("allowNegativeResources", False)),
        output_prefix=data.get("outputPrefix", ""),
    )
    for node_data in data.get("nodes", []):
        _add_node(force, node_data, parent_key=None)
    return force


def _add_node(force: MissionForce, data: Dict[str, Any], parent_key: Optional[str]) -> None:
    node = MissionNode(
        key=data["key"],
        name=data.get("name", data["key"]),
        force_key=force.key,
        parent_key=parent_key,
        opened=bool(data.get("opened", False)),
    )
    for action_data in data.get("actions", []):
        node.actions[action_data["key"]] = MissionAction(
            key=action_data["key"],
            name=action_data.get("name", action_data["key"]),
            parameters=ActionParameters(
                success_chance=float(action_data.get("successChance", 1.0)),
                process_time_ms=float(action_data.get("processTime", 0)),
            ),
        )
    force.nodes[node.key] = node
    if parent_key is not None:
        force.nodes[parent_key].children.append(node.key)
    for child_data in data.get("children", []):
        _add_node(force, child_data, parent_key=node.key)


def load_session(path: Path) -> MissionSession:
    """Load a session snapshot from a YAML or JSON file."""
    with open(path) as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Session snapshot must contain a mapping: {path}")
    return MissionSession.from_dict(data)
