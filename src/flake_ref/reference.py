"""Flake references: the structured value and its text entry points

This module provides FlakeRef, an immutable pairing of one reference type
with its generic parameters and an optional attribute path, together with
the parse/serialize functions and a fluent builder.
"""

import dataclasses
import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import (
    IncompatibleParameterError,
    MalformedAttributePathError,
    MalformedParameterError,
)
from .lexical import has_control_chars, split_once, strip_prefix, take_until
from .params import validate_boolean_params
from .parser import parse_components
from .refs import RefOrRev, Reference, Revision
from .serializer import render
from .types import (
    PLATFORM_POLICIES,
    VARIANTS,
    File,
    FlakeRefType,
    ForgePlatform,
    Git,
    GitForge,
    Indirect,
    Mercurial,
    Path,
    RefKind,
    Tarball,
    check_reserved_params,
    is_archive_url,
    url_scheme,
)

logger = logging.getLogger(__name__)


class FlakeRef:
    """A flake reference: one reference type plus generic parameters

    Examples:
    - `github:nixos/nixpkgs/nixos-23.05`
    - `git+https://example.com/repo.git?ref=main&dir=sub`
    - `path:/home/user/flake#packages.x86_64-linux.default`

    Instances are immutable; the `with_*` methods return new references.
    Equality compares the reference type, the parameters (ignoring their
    order) and the attribute path.
    """

    __slots__ = ("_ref_type", "_params", "_attr_path")

    def __init__(
        self,
        ref_type: FlakeRefType,
        params: Optional[Mapping[str, str]] = None,
        attr_path: Iterable[str] = (),
    ):
        if not isinstance(ref_type, VARIANTS):
            raise TypeError(f"Not a flake reference type: {ref_type!r}")
        params = dict(params or {})
        for key, value in params.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise TypeError(f"Parameter keys and values must be strings: {key!r}={value!r}")
            if not key:
                raise MalformedParameterError(f"={value}", "empty key")
        check_reserved_params(ref_type, params)
        validate_boolean_params(params)
        attr_path = tuple(attr_path)
        for segment in attr_path:
            if not segment or '"' in segment or has_control_chars(segment):
                raise MalformedAttributePathError(".".join(attr_path))

        self._ref_type = ref_type
        self._params: Mapping[str, str] = MappingProxyType(params)
        self._attr_path = attr_path

    @classmethod
    def from_string(cls, s: str) -> 'FlakeRef':
        """Create a flake reference from its textual form

        Format: `<scheme>:<locator>[?key=value&...][#attr.path]`, or the
        scheme-less forms: a path starting with `/`, `./` or `../`, or a
        bare registry id with an optional `/ref_or_rev`.
        """
        ref_type, params, attr_path = parse_components(s)
        return cls(ref_type, params, attr_path)

    # Variant constructors

    @classmethod
    def forge(
        cls,
        platform: ForgePlatform,
        owner: str,
        repo: str,
        ref_or_rev: Optional[RefOrRev] = None,
        host: Optional[str] = None,
    ) -> 'FlakeRef':
        return cls(GitForge(platform, owner, repo, ref_or_rev, host))

    @classmethod
    def github(cls, owner: str, repo: str, ref_or_rev: Optional[RefOrRev] = None,
               host: Optional[str] = None) -> 'FlakeRef':
        return cls.forge(ForgePlatform.GITHUB, owner, repo, ref_or_rev, host)

    @classmethod
    def gitlab(cls, owner: str, repo: str, ref_or_rev: Optional[RefOrRev] = None,
               host: Optional[str] = None) -> 'FlakeRef':
        return cls.forge(ForgePlatform.GITLAB, owner, repo, ref_or_rev, host)

    @classmethod
    def sourcehut(cls, owner: str, repo: str, ref_or_rev: Optional[RefOrRev] = None,
                  host: Optional[str] = None) -> 'FlakeRef':
        return cls.forge(ForgePlatform.SOURCEHUT, owner, repo, ref_or_rev, host)

    @classmethod
    def git(cls, url: str, ref_or_rev: Optional[RefOrRev] = None, shallow: bool = False) -> 'FlakeRef':
        return cls(Git(url, ref_or_rev, shallow))

    @classmethod
    def mercurial(cls, url: str, ref_or_rev: Optional[RefOrRev] = None) -> 'FlakeRef':
        return cls(Mercurial(url, ref_or_rev))

    @classmethod
    def tarball(cls, url: str) -> 'FlakeRef':
        return cls(Tarball(url))

    @classmethod
    def file(cls, url: str) -> 'FlakeRef':
        return cls(File(url))

    @classmethod
    def path(cls, path: str) -> 'FlakeRef':
        return cls(Path(path))

    @classmethod
    def indirect(cls, id: str, ref_or_rev: Optional[RefOrRev] = None) -> 'FlakeRef':
        return cls(Indirect(id, ref_or_rev))

    # Accessors

    @property
    def ref_type(self) -> FlakeRefType:
        return self._ref_type

    @property
    def kind(self) -> RefKind:
        return self._ref_type.kind

    @property
    def params(self) -> Mapping[str, str]:
        """Generic parameters, read-only, in insertion order"""
        return self._params

    @property
    def attr_path(self) -> tuple:
        return self._attr_path

    @property
    def ref_or_rev(self) -> Optional[RefOrRev]:
        return getattr(self._ref_type, "ref_or_rev", None)

    def get_param(self, key: str) -> Optional[str]:
        return self._params.get(key)

    def id(self) -> Optional[str]:
        """Registry id of an indirect reference, or the repo of a forge one"""
        if isinstance(self._ref_type, Indirect):
            return self._ref_type.id
        if isinstance(self._ref_type, GitForge):
            return self._ref_type.repo
        return None

    # Derived references

    def with_param(self, key: str, value: str) -> 'FlakeRef':
        """Add or update a generic parameter"""
        new_params = dict(self._params)
        new_params[key] = value
        return FlakeRef(self._ref_type, new_params, self._attr_path)

    def without_param(self, key: str) -> 'FlakeRef':
        new_params = dict(self._params)
        new_params.pop(key, None)
        return FlakeRef(self._ref_type, new_params, self._attr_path)

    def with_ref_type(self, ref_type: FlakeRefType) -> 'FlakeRef':
        return FlakeRef(ref_type, self._params, self._attr_path)

    def with_ref_or_rev(self, ref_or_rev: Optional[RefOrRev]) -> 'FlakeRef':
        """Replace the ref_or_rev of a variant that has one"""
        if not hasattr(self._ref_type, "ref_or_rev"):
            raise IncompatibleParameterError("ref", self.kind.value)
        return self.with_ref_type(dataclasses.replace(self._ref_type, ref_or_rev=ref_or_rev))

    def with_attr_path(self, attr_path: Iterable[str]) -> 'FlakeRef':
        return FlakeRef(self._ref_type, self._params, attr_path)

    # Serialization

    def to_string(self) -> str:
        """Get the canonical string representation of this reference"""
        return render(self._ref_type, self._params, self._attr_path)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"FlakeRef('{self.to_string()}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlakeRef):
            return False
        return (
            self._ref_type == other._ref_type
            and dict(self._params) == dict(other._params)
            and self._attr_path == other._attr_path
        )

    def __hash__(self) -> int:
        return hash((self._ref_type, tuple(sorted(self._params.items())), self._attr_path))


class FlakeRefBuilder:
    """Builder for creating flake references fluently"""

    def __init__(self, ref_type: FlakeRefType):
        self.ref_type = ref_type
        self.params: Dict[str, str] = {}
        self.attr_path: List[str] = []

    def param(self, key: str, value: str) -> 'FlakeRefBuilder':
        self.params[key] = value
        return self

    def dir(self, dir: str) -> 'FlakeRefBuilder':
        """Subdirectory of the source tree that holds the flake"""
        return self.param("dir", dir)

    def nar_hash(self, nar_hash: str) -> 'FlakeRefBuilder':
        return self.param("narHash", nar_hash)

    def ref(self, name: str) -> 'FlakeRefBuilder':
        return self.ref_or_rev(Reference(name))

    def rev(self, rev: str) -> 'FlakeRefBuilder':
        return self.ref_or_rev(Revision(rev))

    def ref_or_rev(self, ref_or_rev: Optional[RefOrRev]) -> 'FlakeRefBuilder':
        if not hasattr(self.ref_type, "ref_or_rev"):
            raise IncompatibleParameterError("ref", self.ref_type.kind.value)
        self.ref_type = dataclasses.replace(self.ref_type, ref_or_rev=ref_or_rev)
        return self

    def attr(self, *segments: str) -> 'FlakeRefBuilder':
        self.attr_path.extend(segments)
        return self

    def build(self) -> FlakeRef:
        return FlakeRef(self.ref_type, self.params, self.attr_path)


def parse(text: str) -> FlakeRef:
    """Parse text into a FlakeRef; raises a FlakeRefError subclass on failure"""
    return FlakeRef.from_string(text)


def serialize(reference: FlakeRef) -> str:
    return reference.to_string()


def canonical(text: str) -> str:
    """Get the canonical form of a flake reference string"""
    return parse(text).to_string()


_WEB_HOSTS = {policy.default_host: platform for platform, policy in PLATFORM_POLICIES.items()}


def _forge_text_from_web_url(text: str) -> Optional[str]:
    """Rewrite a forge web URL into shorthand text, or None if it is not one"""
    body, fragment = split_once(text, '#')
    locator, query = split_once(body, '?')
    _, rest = split_once(locator, ':')
    authority = strip_prefix(rest or "", "//")
    if authority is None:
        return None
    host, path = take_until(authority, "/")
    host = host.lower()
    platform = _WEB_HOSTS.get(strip_prefix(host, "www.") or host)
    if platform is None:
        return None

    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        return None
    owner, repo = segments[0], segments[1]
    if repo.endswith(".git") and len(repo) > len(".git"):
        repo = repo[:-len(".git")]
    tail = segments[2:]
    if tail and tail[0] == "-":
        # gitlab puts its routes under /-/
        tail = tail[1:]

    shorthand = f"{platform.value}:{owner}/{repo}"
    if len(tail) >= 2 and tail[0] in ("tree", "commit"):
        shorthand += "/" + "/".join(tail[1:])
    elif tail:
        return None
    if query is not None:
        shorthand += "?" + query
    if fragment is not None:
        shorthand += "#" + fragment
    return shorthand


def convert_or_parse(text: str) -> FlakeRef:
    """Parse text, first converting forge web URLs into shorthand

    `https://github.com/nixos/nixpkgs` becomes `github:nixos/nixpkgs`, and a
    `/tree/<ref>` or `/commit/<rev>` tail becomes the ref_or_rev. Anything
    that is not a forge web URL is handed to parse() unchanged.
    """
    if url_scheme(text) in ("http", "https") and not is_archive_url(text):
        shorthand = _forge_text_from_web_url(text)
        if shorthand is not None:
            logger.debug("converted web URL %r to %r", text, shorthand)
            return parse(shorthand)
        logger.debug("%r is not a forge web URL, parsing as-is", text)
    return parse(text)
