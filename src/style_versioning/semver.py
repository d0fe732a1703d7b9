"""
Semantic version engine.

Parses, compares and increments ``MAJOR.MINOR.PATCH[-PRERELEASE]`` version
strings. Every function is pure and works on plain strings; a leading ``v``
or ``=`` and surrounding whitespace are ignored.

Numeric components are read one ASCII digit at a time. A component that is
absent or not a digit run comes back as ``None`` (never ``0``), so callers
must check before doing arithmetic with it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from .cli_config import get_config
from .error_handling import InvalidComparatorError, InvalidVersionError

_CLEAN_PREFIXES = ("v", "=")
_DIGIT_VALUES = {char: value for value, char in enumerate("0123456789")}


class ReleaseType(Enum):
    """Release kinds understood by inc()."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    PREMAJOR = "premajor"
    PREMINOR = "preminor"
    PREPATCH = "prepatch"
    PRERELEASE = "prerelease"


@dataclass(frozen=True)
class Prerelease:
    """The ``-name.number`` tag of a version."""

    name: Optional[str] = None
    number: Optional[int] = None

    def __str__(self) -> str:
        if self.name is None:
            return str(self.number)
        if self.number is None:
            return self.name
        return f"{self.name}.{self.number}"

    @classmethod
    def parse(cls, text: str) -> Optional["Prerelease"]:
        """Split a prerelease tag at its last ``.`` into name and counter.

        ``alpha.beta.0`` gives name ``alpha.beta`` and number ``0``. A tag
        whose last segment is not a digit run is all name.
        """
        if not text:
            return None

        name, separator, counter = text.rpartition(".")
        if not separator:
            number = _parse_digits(text)
            if number is not None:
                return cls(name=None, number=number)
            return cls(name=text, number=None)

        number = _parse_digits(counter)
        if number is None:
            return cls(name=text, number=None)
        return cls(name=name or None, number=number)


@dataclass(frozen=True)
class Version:
    """A parsed, valid version."""

    major: int
    minor: int
    patch: int
    prerelease: Optional[Prerelease] = None

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease is not None:
            return f"{base}-{self.prerelease}"
        return base

    @property
    def triple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    @classmethod
    def parse(cls, version: str) -> Optional["Version"]:
        """Parse a version string, returning None when it is not valid."""
        if not valid(version):
            return None
        return cls(
            major=major(version),
            minor=minor(version),
            patch=patch(version),
            prerelease=prerelease(version),
        )


VersionLike = Union[str, Version]


def _parse_digits(text: str) -> Optional[int]:
    """Convert a run of ASCII digits to an integer.

    Returns None for an empty string or at the first character that is not
    an ASCII digit; signs, underscores and non-ASCII digits are rejected.
    """
    if not text:
        return None

    value = 0
    for char in text:
        digit = _DIGIT_VALUES.get(char)
        if digit is None:
            return None
        value = value * 10 + digit
    return value


def _as_text(version: VersionLike) -> Optional[str]:
    if isinstance(version, Version):
        return str(version)
    if isinstance(version, str):
        return version
    return None


def _core_parts(version: VersionLike) -> Optional[List[str]]:
    """Split the numeric core of a version into at most three parts."""
    text = _as_text(version)
    if text is None:
        return None
    core = clean(text).partition("-")[0]
    return core.split(".", 2)


def clean(raw: str) -> str:
    """Strip surrounding whitespace and any leading ``v`` or ``=`` characters."""
    version = raw.strip()
    while version[:1] in _CLEAN_PREFIXES:
        version = version[1:].strip()
    return version


def major(version: VersionLike) -> Optional[int]:
    """Return the major component, or None if it is not a number."""
    parts = _core_parts(version)
    if parts is None:
        return None
    return _parse_digits(parts[0])


def minor(version: VersionLike) -> Optional[int]:
    """Return the minor component, or None if there is no second ``.``."""
    parts = _core_parts(version)
    if parts is None or len(parts) < 3:
        return None
    return _parse_digits(parts[1])


def patch(version: VersionLike) -> Optional[int]:
    """Return the patch component, or None if it is absent or not a number."""
    parts = _core_parts(version)
    if parts is None or len(parts) < 3:
        return None
    return _parse_digits(parts[2])


def prerelease(version: VersionLike) -> Optional[Prerelease]:
    """Return the prerelease tag of a version, if it has one."""
    text = _as_text(version)
    if text is None:
        return None
    return Prerelease.parse(clean(text).partition("-")[2])


def valid(version: VersionLike) -> bool:
    """Check that a version has a ``.`` and numeric major, minor and patch."""
    text = _as_text(version)
    if text is None or "." not in text:
        return False
    return (
        major(text) is not None
        and minor(text) is not None
        and patch(text) is not None
    )


def parse(version: VersionLike) -> Optional[Version]:
    """Parse a version string into a Version, or None when it is not valid."""
    if isinstance(version, Version):
        return version
    return Version.parse(version)


def _require(version: VersionLike) -> Version:
    parsed = parse(version)
    if parsed is None:
        raise InvalidVersionError(version)
    return parsed


def eq(v1: VersionLike, v2: VersionLike) -> bool:
    """Equal major, minor and patch. Prerelease tags are not compared."""
    return _require(v1).triple == _require(v2).triple


def neq(v1: VersionLike, v2: VersionLike) -> bool:
    return not eq(v1, v2)


def gt(v1: VersionLike, v2: VersionLike) -> bool:
    """Whether v1 takes precedence over v2.

    With equal major.minor.patch the prerelease tags decide: differing tag
    names always count as greater, a version without a prerelease counter
    outranks one with a counter, and otherwise the higher counter wins.
    """
    first, second = _require(v1), _require(v2)

    if first.triple == second.triple:
        pre1 = first.prerelease or Prerelease()
        pre2 = second.prerelease or Prerelease()
        if pre1.name != pre2.name:
            return True
        if pre1.number is None and pre2.number is not None:
            return True
        if pre1.number is None or pre2.number is None:
            return False
        return pre1.number > pre2.number

    if first.major > second.major:
        return True
    if first.major == second.major and first.minor > second.minor:
        return True
    if (
        first.major == second.major
        and first.minor == second.minor
        and first.patch > second.patch
    ):
        return True
    return False


def gte(v1: VersionLike, v2: VersionLike) -> bool:
    return gt(v1, v2) or eq(v1, v2)


def lt(v1: VersionLike, v2: VersionLike) -> bool:
    return neq(v1, v2) and not gt(v1, v2)


def lte(v1: VersionLike, v2: VersionLike) -> bool:
    return eq(v1, v2) or lt(v1, v2)


def inc(
    version: VersionLike,
    release: Union[str, ReleaseType],
    prerelease_name: Optional[str] = None,
) -> Optional[str]:
    """
    Compute the next version for a release kind.

    Args:
        version: The version to increment
        release: One of major, minor, patch, premajor, preminor, prepatch,
            prerelease
        prerelease_name: Tag name for the ``pre*`` kinds; defaults to the
            configured ``semver.default_prerelease_name``

    Returns:
        The incremented version string, or None for an unknown release kind
        or an invalid version.
    """
    current = parse(version)
    if current is None:
        return None

    try:
        release_type = ReleaseType(release)
    except ValueError:
        return None

    name = prerelease_name or get_config().semver.default_prerelease_name
    first_prerelease = Prerelease(name=name, number=0)

    if release_type is ReleaseType.MAJOR:
        bumped = Version(current.major + 1, 0, 0)
    elif release_type is ReleaseType.MINOR:
        bumped = Version(current.major, current.minor + 1, 0)
    elif release_type is ReleaseType.PATCH:
        bumped = Version(current.major, current.minor, current.patch + 1)
    elif release_type is ReleaseType.PREMAJOR:
        bumped = Version(current.major + 1, 0, 0, first_prerelease)
    elif release_type is ReleaseType.PREMINOR:
        bumped = Version(current.major, current.minor + 1, 0, first_prerelease)
    elif release_type is ReleaseType.PREPATCH:
        bumped = Version(current.major, current.minor, current.patch + 1, first_prerelease)
    elif current.prerelease is not None:
        existing = current.prerelease
        number = 0 if existing.number is None else existing.number + 1
        bumped = Version(
            current.major,
            current.minor,
            current.patch,
            Prerelease(name=existing.name, number=number),
        )
    else:
        bumped = Version(current.major, current.minor, current.patch + 1, first_prerelease)

    return str(bumped)


_COMPARATORS = {
    "==": eq,
    "!=": neq,
    ">": gt,
    ">=": gte,
    "<": lt,
    "<=": lte,
}

COMPARATOR_TOKENS = tuple(_COMPARATORS) + ("===", "!==")


def cmp(v1: VersionLike, comparator: str, v2: VersionLike) -> bool:
    """
    Compare two versions with a comparator token.

    ``===`` and ``!==`` compare the raw strings without parsing them; every
    other token dispatches to the matching semver predicate.

    Raises:
        InvalidComparatorError: If the token is not supported
        InvalidVersionError: If a semantic comparison gets an invalid version
    """
    if comparator == "===":
        return v1 == v2
    if comparator == "!==":
        return v1 != v2

    try:
        predicate = _COMPARATORS[comparator]
    except KeyError:
        raise InvalidComparatorError(comparator) from None
    return predicate(v1, v2)
