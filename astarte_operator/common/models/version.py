import re
from functools import total_ordering
from typing import NamedTuple, Tuple, Union
from astarte_operator.utils.errors import InvalidVersionError

_VERSION_RE = re.compile(
    r"^v?(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+))?"
    r"(?:\.(?P<micro>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)

SNAPSHOT_SUFFIX = "-snapshot"


class VersionInfo(NamedTuple):
    major: int
    minor: int
    micro: int
    releaselevel: str
    serial: str


def _prerelease_key(pre: str) -> Tuple:
    # A release sorts after every pre-release of the same triple.
    if not pre:
        return (1,)
    parts = []
    for ident in pre.split("."):
        if ident.isdigit():
            parts.append((0, int(ident), ""))
        else:
            parts.append((1, 0, ident))
    return (0, tuple(parts))


@total_ordering
class Version:
    """Lenient semantic version: ``v?major[.minor[.micro]][-pre][+build]``."""

    _version: str

    info: VersionInfo

    def __init__(self, version: str, version_info: VersionInfo = None) -> None:
        self._version = version
        if version_info is None:
            version_info = Version.from_str(self._version).info
        self.info = version_info

    @classmethod
    def from_str(cls, version: str) -> "Version":
        """Parse a version string."""
        if not isinstance(version, str):
            raise InvalidVersionError(f"Invalid version: {version!r}")
        _match = _VERSION_RE.match(version.strip())
        if _match is None:
            raise InvalidVersionError(f"Invalid version: {version!r}")
        _version_info = VersionInfo(
            int(_match.group("major")),
            int(_match.group("minor") or 0),
            int(_match.group("micro") or 0),
            _match.group("pre") or "",
            _match.group("build") or "",
        )
        return cls(version, _version_info)

    @classmethod
    def is_valid(cls, version: str) -> bool:
        try:
            cls.from_str(version)
        except InvalidVersionError:
            return False
        return True

    @property
    def major(self) -> int:
        return self.info.major

    @property
    def minor(self) -> int:
        return self.info.minor

    @property
    def micro(self) -> int:
        return self.info.micro

    @property
    def prerelease(self) -> str:
        return self.info.releaselevel

    def strip_prerelease(self) -> "Version":
        """1.0.0-rc.1+build.5 -> 1.0.0"""
        info = VersionInfo(self.major, self.minor, self.micro, "", "")
        return Version(f"{self.major}.{self.minor}.{self.micro}", info)

    def is_before(self, other: Union[str, "Version"]) -> bool:
        if isinstance(other, str):
            other = Version.from_str(other)
        return self < other

    def _key(self) -> Tuple:
        return (self.major, self.minor, self.micro, _prerelease_key(self.prerelease))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.micro}"
        if self.prerelease:
            return f"{base}-{self.prerelease}"
        return base

    def __repr__(self) -> str:
        return f"Version<{self._version}>"


def normalize_snapshot(version: str) -> str:
    """Turn a snapshot marker into its base release.

    ``1.1-snapshot`` becomes ``1.1.0``; ``1.1.0-snapshot`` becomes ``1.1.0``.
    """
    if not version or SNAPSHOT_SUFFIX not in version:
        return version
    base = version.split(SNAPSHOT_SUFFIX, 1)[0]
    if base.lstrip("v").count(".") >= 2:
        return base
    return version.replace(SNAPSHOT_SUFFIX, ".0", 1)


def normalized_version(version: str) -> Version:
    """Parse ``version`` after snapshot normalization."""
    return Version.from_str(normalize_snapshot(version))
