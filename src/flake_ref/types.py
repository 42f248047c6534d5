"""Reference type variants

Each variant is an immutable record. Exactly one of them is held by a
FlakeRef; construction validates the fields so that every value that
exists can be serialized.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from .errors import (
    EmptyLocatorError,
    IncompatibleParameterError,
    InvalidHostOverrideError,
    InvalidIndirectIdError,
    InvalidPathError,
    InvalidPathSegmentError,
    MissingOwnerOrRepoError,
    UnrecognizedSchemeError,
    WhitespaceInInputError,
)
from .lexical import has_control_chars, split_once, take_until
from .refs import RefOrRev, Revision


class RefKind(Enum):
    """Variant tags"""
    GIT_FORGE = "gitforge"
    GIT = "git"
    MERCURIAL = "hg"
    TARBALL = "tarball"
    FILE = "file"
    PATH = "path"
    INDIRECT = "indirect"


class ForgePlatform(Enum):
    """Hosted forges with a shorthand scheme"""
    GITHUB = "github"
    GITLAB = "gitlab"
    SOURCEHUT = "sourcehut"


@dataclass(frozen=True)
class PlatformPolicy:
    default_host: str
    supports_host_override: bool


PLATFORM_POLICIES: Dict[ForgePlatform, PlatformPolicy] = {
    ForgePlatform.GITHUB: PlatformPolicy("github.com", True),
    ForgePlatform.GITLAB: PlatformPolicy("gitlab.com", True),
    ForgePlatform.SOURCEHUT: PlatformPolicy("git.sr.ht", True),
}

TRANSPORTS: Tuple[str, ...] = ("http", "https", "ssh", "file")
ARCHIVE_TRANSPORTS: Tuple[str, ...] = ("http", "https", "file")

ARCHIVE_SUFFIXES: Tuple[str, ...] = (
    ".tar", ".gz", ".bz2", ".xz", ".zip", ".zst", ".tgz",
    ".tar.gz", ".tar.bz2", ".tar.xz", ".tar.zst",
)

INDIRECT_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
_HOST_PATTERN = re.compile(r"[A-Za-z0-9.-]+(:[0-9]+)?")


def url_scheme(url: str) -> Optional[str]:
    """Scheme of a URL (text before the first ':'), or None"""
    scheme, rest = split_once(url, ':')
    if rest is None:
        return None
    return scheme.lower()


def is_archive_url(url: str) -> bool:
    """Whether the URL's path ends in a recognized archive suffix"""
    _, rest = split_once(url, ':')
    path = rest if rest is not None else url
    if path.startswith("//"):
        # drop the authority
        _, path = take_until(path[2:], "/")
    return path.lower().endswith(ARCHIVE_SUFFIXES)


def _checked_url(url: str, kind: RefKind, schemes: Tuple[str, ...]) -> str:
    """Validate a fetch URL and return it with a lowercased scheme"""
    if not url:
        raise EmptyLocatorError(kind.value)
    if url != url.strip() or has_control_chars(url):
        raise WhitespaceInInputError(url)
    scheme, rest = split_once(url, ':')
    if rest is None or scheme.lower() not in schemes:
        raise UnrecognizedSchemeError(scheme if rest is not None else url)
    body = rest[2:] if rest.startswith("//") else rest
    if not body:
        raise EmptyLocatorError(kind.value)
    if '?' in url or '#' in url:
        raise InvalidPathError(url)
    return f"{scheme.lower()}:{rest}"


@dataclass(frozen=True)
class GitForge:
    """`github:`, `gitlab:` and `sourcehut:` shorthand references"""
    platform: ForgePlatform
    owner: str
    repo: str
    ref_or_rev: Optional[RefOrRev] = None
    host_override: Optional[str] = None

    kind: ClassVar[RefKind] = RefKind.GIT_FORGE
    reserved_params: ClassVar[FrozenSet[str]] = frozenset({"owner", "repo", "host", "ref", "rev"})

    def __post_init__(self) -> None:
        platform = ForgePlatform(self.platform)
        object.__setattr__(self, "platform", platform)
        for field, value in (("owner", self.owner), ("repo", self.repo)):
            if not value:
                raise MissingOwnerOrRepoError(platform.value, field)
            if has_control_chars(value) or any(c.isspace() for c in value):
                raise InvalidPathSegmentError(value, field)

        if self.host_override is not None:
            policy = PLATFORM_POLICIES[platform]
            if not policy.supports_host_override or not _HOST_PATTERN.fullmatch(self.host_override):
                raise InvalidHostOverrideError(self.host_override, platform.value)
            if self.host_override.lower() == policy.default_host:
                object.__setattr__(self, "host_override", None)

    @property
    def host(self) -> str:
        """Effective host: the override, or the platform's default"""
        return self.host_override or PLATFORM_POLICIES[self.platform].default_host


@dataclass(frozen=True)
class Git:
    """Git repository at a full fetch URL"""
    url: str
    ref_or_rev: Optional[RefOrRev] = None
    shallow: bool = False

    kind: ClassVar[RefKind] = RefKind.GIT
    reserved_params: ClassVar[FrozenSet[str]] = frozenset({"url", "ref", "rev", "shallow"})

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", _checked_url(self.url, self.kind, ("git",) + TRANSPORTS))


@dataclass(frozen=True)
class Mercurial:
    """Mercurial repository at a full fetch URL"""
    url: str
    ref_or_rev: Optional[RefOrRev] = None

    kind: ClassVar[RefKind] = RefKind.MERCURIAL
    reserved_params: ClassVar[FrozenSet[str]] = frozenset({"url", "ref", "rev", "shallow"})

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", _checked_url(self.url, self.kind, ("hg",) + TRANSPORTS))


@dataclass(frozen=True)
class Tarball:
    url: str

    kind: ClassVar[RefKind] = RefKind.TARBALL
    reserved_params: ClassVar[FrozenSet[str]] = frozenset({"url"})

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", _checked_url(self.url, self.kind, ARCHIVE_TRANSPORTS))


@dataclass(frozen=True)
class File:
    url: str

    kind: ClassVar[RefKind] = RefKind.FILE
    reserved_params: ClassVar[FrozenSet[str]] = frozenset({"url"})

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", _checked_url(self.url, self.kind, ARCHIVE_TRANSPORTS))


@dataclass(frozen=True)
class Path:
    """Local filesystem path, absolute or relative, kept byte-exact"""
    path: str

    kind: ClassVar[RefKind] = RefKind.PATH
    reserved_params: ClassVar[FrozenSet[str]] = frozenset({"path", "ref", "rev", "shallow"})

    def __post_init__(self) -> None:
        if not self.path:
            raise EmptyLocatorError(self.kind.value)
        if self.path != self.path.strip() or has_control_chars(self.path):
            raise WhitespaceInInputError(self.path)
        if '?' in self.path or '#' in self.path:
            raise InvalidPathError(self.path)


@dataclass(frozen=True)
class Indirect:
    """Registry name, resolved elsewhere"""
    id: str
    ref_or_rev: Optional[RefOrRev] = None

    kind: ClassVar[RefKind] = RefKind.INDIRECT
    reserved_params: ClassVar[FrozenSet[str]] = frozenset({"id", "ref", "rev"})

    def __post_init__(self) -> None:
        if not INDIRECT_ID_PATTERN.fullmatch(self.id):
            raise InvalidIndirectIdError(self.id)


FlakeRefType = Union[GitForge, Git, Mercurial, Tarball, File, Path, Indirect]

VARIANTS: Tuple[type, ...] = (GitForge, Git, Mercurial, Tarball, File, Path, Indirect)


def check_reserved_params(ref_type: FlakeRefType, params: Mapping[str, str]) -> None:
    """Reject generic parameters that duplicate or contradict typed fields

    A `ref` key is tolerated next to a Revision: it is the mutable
    reference hint kept when both ref= and rev= were given.
    """
    for key in params:
        if key not in ref_type.reserved_params:
            continue
        if key == "ref" and isinstance(getattr(ref_type, "ref_or_rev", None), Revision):
            continue
        raise IncompatibleParameterError(key, ref_type.kind.value)
