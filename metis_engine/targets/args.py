"""Target argument schema.

An ArgSpec describes one configurable input of a target. Dependencies state
that an argument is only meaningful when another argument satisfies a
condition; the mission editor uses them to show/hide inputs, the engine uses
them to sanitize stored args and to decide whether a missing required arg is
an error.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from metis_engine.utils.errors import ArgumentValidationError

logger = logging.getLogger(__name__)

DependencyArg = Union[str, int, float, bool]


class ArgType:
    """Argument type constants."""

    STRING = "string"
    LARGE_STRING = "large-string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DROPDOWN = "dropdown"
    FORCE = "force"
    NODE = "node"
    ACTION = "action"
    FILE = "file"

    ALL = [STRING, LARGE_STRING, NUMBER, BOOLEAN, DROPDOWN, FORCE, NODE, ACTION, FILE]

    # Keys each mission-component argument must carry.
    COMPONENT_KEYS = {
        FORCE: ["forceKey"],
        NODE: ["forceKey", "nodeKey"],
        ACTION: ["forceKey", "nodeKey"],
        FILE: ["fileId"],
    }

    # Display-only keys stored alongside mission-component arguments.
    DISPLAY_KEYS = ["forceName", "nodeName", "actionName", "fileName"]


class Dependency:
    """A condition another argument's value must satisfy.

    Encoded on the wire as ``"<NAME>/<dependentId>/<json-args>"``.
    """

    TRUTHY = "TRUEY"
    FALSEY = "FALSEY"
    EQUALS = "EQUALS"

    NAMES = [TRUTHY, FALSEY, EQUALS]

    def __init__(self, name: str, dependent_id: str, args: Optional[Sequence[DependencyArg]] = None):
        if name not in self.NAMES:
            raise ValueError(f"Unexpected name for dependency condition: {name}")
        if "/" in dependent_id:
            raise ValueError("Dependent ID cannot include '/'")
        self.name = name
        self.dependent_id = dependent_id
        self.args: List[DependencyArg] = list(args or [])

    def condition(self, value: Any) -> bool:
        if self.name == self.TRUTHY:
            return bool(value)
        if self.name == self.FALSEY:
            return not value
        return any(expected == value for expected in self.args)

    def encode(self) -> str:
        return f"{self.name}/{self.dependent_id}/{json.dumps(self.args, separators=(',', ':'))}"

    @classmethod
    def decode(cls, encoding: str) -> "Dependency":
        try:
            name, dependent_id, raw_args = encoding.split("/", 2)
            args = json.loads(raw_args) if raw_args else []
        except ValueError as e:
            raise ValueError(f"Malformed dependency encoding: {encoding!r}") from e
        return cls(name, dependent_id, args)

    @classmethod
    def truthy(cls, dependent_id: str) -> "Dependency":
        return cls(cls.TRUTHY, dependent_id)

    @classmethod
    def falsey(cls, dependent_id: str) -> "Dependency":
        return cls(cls.FALSEY, dependent_id)

    @classmethod
    def equals(cls, dependent_id: str, expected: Sequence[DependencyArg]) -> "Dependency":
        return cls(cls.EQUALS, dependent_id, expected)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Dependency) and self.encode() == other.encode()

    def __repr__(self) -> str:
        return f"Dependency({self.encode()!r})"


@dataclass
class ArgSpec:
    """One configurable input of a target.

    Attributes:
        id: Key of the argument inside the effect's argument bag.
        name: Display name.
        type: One of ArgType.ALL.
        required: Whether a value must be present (when dependencies are met).
        default: Value used when the argument is absent.
        min: Lower bound for number arguments.
        max: Upper bound for number arguments.
        integers_only: Reject non-integral numbers.
        options: Dropdown options, each ``{"id", "name", "value"}``.
        dependencies: Conditions on other arguments.
    """

    id: str
    name: str
    type: str
    required: bool = False
    default: Any = None
    min: Optional[float] = None
    max: Optional[float] = None
    integers_only: bool = False
    options: List[Dict[str, Any]] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    description: str = ""

    def __post_init__(self):
        if self.type not in ArgType.ALL:
            raise ValueError(f"Unknown argument type {self.type!r} for '{self.id}'")

    @property
    def option_values(self) -> List[Any]:
        return [option.get("value") for option in self.options]

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "_id": self.id,
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "dependencies": [dep.encode() for dep in self.dependencies],
        }
        if self.default is not None:
            data["default"] = self.default
        if self.type == ArgType.NUMBER:
            data["min"] = self.min
            data["max"] = self.max
            data["integersOnly"] = self.integers_only
        if self.type == ArgType.DROPDOWN:
            data["options"] = list(self.options)
        if self.description:
            data["tooltipDescription"] = self.description
        return data

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ArgSpec":
        return cls(
            id=data["_id"],
            name=data.get("name", data["_id"]),
            type=data["type"],
            required=bool(data.get("required", False)),
            default=data.get("default"),
            min=data.get("min"),
            max=data.get("max"),
            integers_only=bool(data.get("integersOnly", False)),
            options=list(data.get("options", [])),
            dependencies=[Dependency.decode(d) for d in data.get("dependencies", [])],
            description=data.get("tooltipDescription", ""),
        )


def dependencies_met(spec: ArgSpec, args: Dict[str, Any]) -> bool:
    """Whether every dependency of ``spec`` is satisfied by ``args``."""
    return all(dep.condition(args.get(dep.dependent_id)) for dep in spec.dependencies)


def sanitize_args(schema: Sequence[ArgSpec], args: Dict[str, Any]) -> Dict[str, Any]:
    """Drop stored values for arguments whose dependencies are not met.

    Only boolean and required arguments are dropped: their presence would
    otherwise be mistaken for a deliberate setting.
    """
    sanitized = copy.deepcopy(args)
    for spec in schema:
        if spec.id in sanitized and not dependencies_met(spec, sanitized):
            if spec.type == ArgType.BOOLEAN or spec.required:
                logger.debug(f"Dropping arg '{spec.id}': dependencies not met")
                del sanitized[spec.id]
    return sanitized


def resolve_defaults(schema: Sequence[ArgSpec], args: Dict[str, Any]) -> Dict[str, Any]:
    """Fill absent arguments with their defaults where dependencies are met.

    Repeats until nothing changes, so a default may satisfy the dependency
    of an argument declared earlier in the schema.
    """
    resolved = dict(args)
    changed = True
    while changed:
        changed = False
        for spec in schema:
            if spec.id in resolved or spec.default is None:
                continue
            if dependencies_met(spec, resolved):
                resolved[spec.id] = copy.deepcopy(spec.default)
                changed = True
    return resolved


def prepare_args(schema: Sequence[ArgSpec], args: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve defaults, then drop values whose dependencies are still unmet."""
    return sanitize_args(schema, resolve_defaults(schema, args))


def _check_value(spec: ArgSpec, value: Any) -> Optional[str]:
    """Return a description of what is wrong with ``value``, or None."""
    if spec.type in (ArgType.STRING, ArgType.LARGE_STRING):
        if not isinstance(value, str):
            return "must be a string"
    elif spec.type == ArgType.BOOLEAN:
        if not isinstance(value, bool):
            return "must be a boolean"
    elif spec.type == ArgType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return "must be a number"
        if spec.integers_only and float(value) != int(value):
            return "must be an integer"
        if spec.min is not None and value < spec.min:
            return f"must be >= {spec.min}"
        if spec.max is not None and value > spec.max:
            return f"must be <= {spec.max}"
    elif spec.type == ArgType.DROPDOWN:
        if spec.options and value not in spec.option_values:
            return f"must be one of {spec.option_values}"
    else:
        if not isinstance(value, dict):
            return f"must be a {spec.type} reference"
        for key in ArgType.COMPONENT_KEYS[spec.type]:
            if not isinstance(value.get(key), str):
                return f"is missing '{key}'"
    return None


def validate_args(schema: Sequence[ArgSpec], args: Dict[str, Any]) -> Dict[str, Any]:
    """Check ``args`` against ``schema``.

    Absent optional arguments are tolerated, as are absent required
    arguments whose dependencies are not met.

    Returns:
        The validated argument bag (unchanged).

    Raises:
        ArgumentValidationError: On the first missing or invalid argument.
    """
    for spec in schema:
        if spec.id not in args or args[spec.id] is None:
            if spec.required and dependencies_met(spec, args):
                raise ArgumentValidationError(
                    f"Missing required argument '{spec.id}' ({spec.name})",
                    arg_id=spec.id,
                )
            continue

        problem = _check_value(spec, args[spec.id])
        if problem:
            raise ArgumentValidationError(
                f"Argument '{spec.id}' ({spec.name}) {problem}, got {args[spec.id]!r}",
                arg_id=spec.id,
            )
    return args
