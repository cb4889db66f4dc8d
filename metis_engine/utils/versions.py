"""Semantic version helpers.

Versions follow SemVer 2.0: MAJOR.MINOR.PATCH with an optional pre-release
and build suffix. Ordering is semver precedence: a pre-release sorts below
its release, and build metadata is ignored.
"""

import functools
import re
from typing import Optional, Tuple, Union

from metis_engine.utils.errors import InvalidVersionError

_PRERELEASE_ID = r"(?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*)"

_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    rf"(?:-({_PRERELEASE_ID}(?:\.{_PRERELEASE_ID})*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$",
    re.ASCII,
)

# Effects saved by older clients record MAJOR.MINOR only.
_LEGACY_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)$", re.ASCII)


def _prerelease_key(identifier: str) -> Tuple[int, Union[int, str]]:
    # Numeric identifiers sort below alphanumeric ones.
    if identifier.isdigit():
        return (0, int(identifier))
    return (1, identifier)


@functools.total_ordering
class SemanticVersion:
    """A parsed semantic version, ordered by semver precedence."""

    def __init__(
        self,
        major: int,
        minor: int,
        patch: int,
        prerelease: Tuple[str, ...] = (),
        build: Optional[str] = None,
    ):
        self.major = major
        self.minor = minor
        self.patch = patch
        self.prerelease = prerelease
        self.build = build

    @classmethod
    def parse(cls, value: str) -> "SemanticVersion":
        if not isinstance(value, str):
            raise InvalidVersionError(value)
        match = _SEMVER_RE.fullmatch(value)
        if not match:
            raise InvalidVersionError(value)
        major, minor, patch, prerelease, build = match.groups()
        return cls(
            int(major),
            int(minor),
            int(patch),
            tuple(prerelease.split(".")) if prerelease else (),
            build,
        )

    @property
    def release(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def _precedence(self):
        # A release outranks every pre-release of the same MAJOR.MINOR.PATCH;
        # a longer pre-release outranks its own prefix.
        if not self.prerelease:
            return (self.release, 1, ())
        return (self.release, 0, tuple(_prerelease_key(i) for i in self.prerelease))

    def __eq__(self, other):
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence() == other._precedence()

    def __lt__(self, other):
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence() < other._precedence()

    def __hash__(self):
        return hash(self._precedence())

    def __str__(self):
        text = ".".join(str(n) for n in self.release)
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + self.build
        return text

    def __repr__(self):
        return f"SemanticVersion('{self}')"


def parse_version(value: str) -> SemanticVersion:
    """Parse a semantic version string.

    Raises:
        InvalidVersionError: If the value is not a valid semantic version.
    """
    return SemanticVersion.parse(value)


def parse_recorded_version(value: str) -> SemanticVersion:
    """Parse the version stored on an effect.

    Legacy two-part versions (``"0.1"``) are read as ``"0.1.0"``.

    Raises:
        InvalidVersionError: If the value is neither semver nor legacy.
    """
    if isinstance(value, str) and _LEGACY_RE.fullmatch(value):
        value = f"{value}.0"
    return SemanticVersion.parse(value)


def is_valid_version(value: str) -> bool:
    try:
        parse_version(value)
    except InvalidVersionError:
        return False
    return True
