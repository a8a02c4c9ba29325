"""
Semantic version domain object for gitix.

Only tag names that fully parse as `major.minor.patch[-prerelease][+build]`
take part in version arithmetic; anything else ("v1.2", "release-3",
"1.2.3.4") is ignored for computing the next tag, though the ref still
exists in the store.

Ordering follows semantic-version precedence: major, minor, patch, then
a release outranks any of its prereleases, and prerelease identifiers
compare numerically when both are numeric, lexically otherwise. Build
metadata never affects precedence.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Iterable, Optional, Tuple, Union

_NUM = r'0|[1-9]\d*'
_IDENT = r'(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)'
SEMVER_PATTERN = re.compile(
    rf'^(?P<major>{_NUM})\.(?P<minor>{_NUM})\.(?P<patch>{_NUM})'
    rf'(?:-(?P<prerelease>{_IDENT}(?:\.{_IDENT})*))?'
    r'(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$'
)


class BumpClass(Enum):
    """Which semantic-version component to increment."""
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"

    @classmethod
    def parse(cls, value: Union[str, 'BumpClass']) -> 'BumpClass':
        """Accept an enum member or its string value (case-insensitive)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid bump class {value!r} (must be major, minor, or patch)")


def _prerelease_key(identifier: str) -> Tuple[int, Union[int, str]]:
    # Numeric identifiers sort before alphanumeric ones
    if identifier.isdigit():
        return (0, int(identifier))
    return (1, identifier)


@total_ordering
@dataclass(frozen=True)
class SemanticVersion:
    """
    Parsed `major.minor.patch[-prerelease]` version.

    Examples:
        SemanticVersion.parse("1.4.0")        -> SemanticVersion(1, 4, 0)
        SemanticVersion.parse("2.0.0-rc.1")   -> SemanticVersion(2, 0, 0, prerelease=("rc", "1"))
        SemanticVersion.parse("v1.0")         -> None
    """

    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> Optional['SemanticVersion']:
        """Parse a tag name, returning None unless it is a full semantic version."""
        if not isinstance(text, str):
            return None
        match = SEMVER_PATTERN.match(text.strip())
        if not match:
            return None
        prerelease = match.group('prerelease')
        build = match.group('build')
        return cls(
            major=int(match.group('major')),
            minor=int(match.group('minor')),
            patch=int(match.group('patch')),
            prerelease=tuple(prerelease.split('.')) if prerelease else (),
            build=tuple(build.split('.')) if build else (),
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def _precedence(self):
        # A release (empty prerelease) outranks all of its prereleases
        pre = (1,) if not self.prerelease else (0, tuple(_prerelease_key(p) for p in self.prerelease))
        return (self.major, self.minor, self.patch, pre)

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

    def bump(self, bump: Union[str, BumpClass]) -> 'SemanticVersion':
        """
        Increment one component and zero the lower ones.

        A prerelease base is first promoted to its release when that release
        already satisfies the bump (1.2.3-rc.1 + patch -> 1.2.3,
        2.0.0-beta + major -> 2.0.0), so the result always outranks the base.
        """
        bump = BumpClass.parse(bump)
        if bump == BumpClass.MAJOR:
            if self.is_prerelease and self.minor == 0 and self.patch == 0:
                return SemanticVersion(self.major, 0, 0)
            return SemanticVersion(self.major + 1, 0, 0)
        if bump == BumpClass.MINOR:
            if self.is_prerelease and self.patch == 0:
                return SemanticVersion(self.major, self.minor, 0)
            return SemanticVersion(self.major, self.minor + 1, 0)
        if self.is_prerelease:
            return SemanticVersion(self.major, self.minor, self.patch)
        return SemanticVersion(self.major, self.minor, self.patch + 1)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def __repr__(self) -> str:
        if self.prerelease:
            return f"SemanticVersion({self.major}, {self.minor}, {self.patch}, prerelease={self.prerelease!r})"
        return f"SemanticVersion({self.major}, {self.minor}, {self.patch})"


ZERO = SemanticVersion(0, 0, 0)

# Starting versions used when no tag parses at all
INITIAL_VERSIONS = {
    BumpClass.MAJOR: SemanticVersion(1, 0, 0),
    BumpClass.MINOR: SemanticVersion(0, 1, 0),
    BumpClass.PATCH: SemanticVersion(0, 0, 1),
}


# =============================================================================
# UTILITY FUNCTIONS (operate on tag names)
# =============================================================================

def parse_versions(names: Iterable[str]) -> list:
    """Return the SemanticVersions among `names`, dropping non-conforming ones."""
    versions = []
    for name in names:
        version = SemanticVersion.parse(name)
        if version is not None:
            versions.append(version)
    return versions


def latest_version(names: Iterable[str]) -> Optional[SemanticVersion]:
    """Highest semantic version among the given tag names, or None."""
    versions = parse_versions(names)
    return max(versions) if versions else None


def next_version(base: Optional[SemanticVersion], bump: Union[str, BumpClass]) -> SemanticVersion:
    """
    Compute the version that follows `base` for a bump class.

    With no parseable base at all, the starting version for the bump
    class is returned directly (1.0.0 / 0.1.0 / 0.0.1).
    """
    bump = BumpClass.parse(bump)
    if base is None:
        return INITIAL_VERSIONS[bump]
    return base.bump(bump)
