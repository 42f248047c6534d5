"""Flake reference parsing: dispatch on the scheme, then extract fields

Text is split in a fixed order: the `#attr.path` fragment first, then the
`?` parameter tail, and the remaining locator is routed to exactly one
variant extractor. Each extractor consumes the parameters that are typed
fields of its variant and hands the rest back as generic parameters.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .errors import (
    EmptyLocatorError,
    InvalidHostOverrideError,
    InvalidIndirectIdError,
    InvalidPathSegmentError,
    MalformedAttributePathError,
    MissingOwnerOrRepoError,
    UnrecognizedSchemeError,
    WhitespaceInInputError,
)
from .lexical import has_control_chars, is_segment_safe, percent_decode, split_once
from .params import parse_bool, parse_params, validate_boolean_params
from .refs import resolve_ref_or_rev
from .types import (
    PLATFORM_POLICIES,
    TRANSPORTS,
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
)

logger = logging.getLogger(__name__)

SCHEME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*")
PATH_PREFIXES = ("/", "./", "../")

# Schemes that may carry a `+<transport>` suffix
_TRANSPORT_SCHEMES = ("git", "hg", "file", "tarball")

Params = Dict[str, str]


@dataclass(frozen=True)
class Route:
    """Dispatcher output: which variant, and the text its extractor gets"""
    kind: RefKind
    remainder: str
    scheme: Optional[str] = None
    transport: Optional[str] = None
    platform: Optional[ForgePlatform] = None


def split_scheme(locator: str) -> Tuple[Optional[str], str]:
    """Split `scheme:rest`; scheme is None when the prefix is not a scheme"""
    scheme, rest = split_once(locator, ':')
    if rest is None or not SCHEME_PATTERN.fullmatch(scheme):
        return None, locator
    return scheme.lower(), rest


def is_path_shaped(locator: str) -> bool:
    return locator in (".", "..") or locator.startswith(PATH_PREFIXES)


def dispatch(locator: str) -> Route:
    """Select the variant for a locator (the text before '?' and '#')

    Checked in priority order: forge shorthand, git, hg, tarball (explicit
    or an http(s) archive URL), file, path, flake registry name. Text
    without a scheme is a path if it looks like one, otherwise an indirect
    registry id.
    """
    scheme, rest = split_scheme(locator)

    if scheme is None:
        if is_path_shaped(locator):
            return Route(RefKind.PATH, locator)
        return Route(RefKind.INDIRECT, locator)

    base, transport = split_once(scheme, '+')

    if transport is None:
        for platform in ForgePlatform:
            if scheme == platform.value:
                return Route(RefKind.GIT_FORGE, rest, scheme, platform=platform)

    if transport is not None and (base not in _TRANSPORT_SCHEMES or transport not in TRANSPORTS):
        raise UnrecognizedSchemeError(scheme)

    if base == "git":
        return Route(RefKind.GIT, rest, scheme, transport)
    if base == "hg":
        return Route(RefKind.MERCURIAL, rest, scheme, transport)
    if base == "tarball" or (scheme in ("http", "https") and is_archive_url(locator)):
        return Route(RefKind.TARBALL, rest, scheme, transport)
    if base == "file":
        return Route(RefKind.FILE, rest, scheme, transport)
    if scheme == "path":
        return Route(RefKind.PATH, rest, scheme)
    if scheme == "flake":
        return Route(RefKind.INDIRECT, rest, scheme)

    raise UnrecognizedSchemeError(scheme)


def _decode_segment(raw: str, field: str) -> str:
    if not is_segment_safe(raw):
        raise InvalidPathSegmentError(raw, field)
    return percent_decode(raw)


def _route_url(route: Route) -> str:
    """Rebuild the fetch URL carried by a git/hg/file/tarball route"""
    if not route.remainder:
        raise EmptyLocatorError(route.kind.value)
    if route.transport is not None:
        return f"{route.transport}:{route.remainder}"
    if route.scheme == "tarball":
        # `tarball:<url>` wraps a complete URL
        return route.remainder
    return f"{route.scheme}:{route.remainder}"


def extract_forge(route: Route, params: Params) -> Tuple[GitForge, Params]:
    """`owner/repo[/ref_or_rev]`, plus the host= override"""
    if route.platform is None:
        raise UnrecognizedSchemeError(route.scheme or "")
    platform = route.platform.value

    owner_raw, rest = split_once(route.remainder, '/')
    if not owner_raw:
        raise MissingOwnerOrRepoError(platform, "owner")
    if rest is None:
        raise MissingOwnerOrRepoError(platform, "repo")
    repo_raw, ref_raw = split_once(rest, '/')
    if not repo_raw:
        raise MissingOwnerOrRepoError(platform, "repo")

    owner = _decode_segment(owner_raw, "owner")
    repo = _decode_segment(repo_raw, "repo")
    segment = percent_decode(ref_raw) if ref_raw else None

    remaining = dict(params)
    host = remaining.pop("host", None)
    if host is not None and not PLATFORM_POLICIES[route.platform].supports_host_override:
        raise InvalidHostOverrideError(host, platform)

    ref_or_rev, remaining = resolve_ref_or_rev(segment, remaining)
    return GitForge(route.platform, owner, repo, ref_or_rev, host), remaining


def extract_git(route: Route, params: Params) -> Tuple[Git, Params]:
    url = _route_url(route)
    remaining = dict(params)
    shallow = False
    if "shallow" in remaining:
        shallow = parse_bool("shallow", remaining.pop("shallow"))
    # the ref/rev source for URL variants is always the parameters
    ref_or_rev, remaining = resolve_ref_or_rev(None, remaining)
    return Git(url, ref_or_rev, shallow), remaining


def extract_mercurial(route: Route, params: Params) -> Tuple[Mercurial, Params]:
    url = _route_url(route)
    ref_or_rev, remaining = resolve_ref_or_rev(None, params)
    return Mercurial(url, ref_or_rev), remaining


def extract_tarball(route: Route, params: Params) -> Tuple[Tarball, Params]:
    return Tarball(_route_url(route)), dict(params)


def extract_file(route: Route, params: Params) -> Tuple[File, Params]:
    return File(_route_url(route)), dict(params)


def extract_path(route: Route, params: Params) -> Tuple[Path, Params]:
    # no percent-decoding: paths stay filesystem-exact
    if not route.remainder:
        raise EmptyLocatorError(route.kind.value)
    return Path(route.remainder), dict(params)


def extract_indirect(route: Route, params: Params) -> Tuple[Indirect, Params]:
    if not route.remainder:
        raise EmptyLocatorError(route.kind.value)
    id, ref_raw = split_once(route.remainder, '/')
    if not id:
        raise InvalidIndirectIdError(id)
    segment = percent_decode(ref_raw) if ref_raw else None
    ref_or_rev, remaining = resolve_ref_or_rev(segment, params)
    return Indirect(id, ref_or_rev), remaining


EXTRACTORS: Dict[RefKind, Callable[[Route, Params], Tuple[FlakeRefType, Params]]] = {
    RefKind.GIT_FORGE: extract_forge,
    RefKind.GIT: extract_git,
    RefKind.MERCURIAL: extract_mercurial,
    RefKind.TARBALL: extract_tarball,
    RefKind.FILE: extract_file,
    RefKind.PATH: extract_path,
    RefKind.INDIRECT: extract_indirect,
}


def parse_attr_path(text: str) -> Tuple[str, ...]:
    """Parse `a.b."c.d"` into ('a', 'b', 'c.d')"""
    segments: List[str] = []
    current = ""
    quoted = False
    closed_quote = False

    for c in text:
        if quoted:
            if c == '"':
                quoted = False
                closed_quote = True
            else:
                current += c
        elif c == '.':
            if not current:
                raise MalformedAttributePathError(text)
            segments.append(current)
            current = ""
            closed_quote = False
        elif c == '"' and not current:
            quoted = True
        elif closed_quote or c == '"':
            raise MalformedAttributePathError(text)
        else:
            current += c

    if quoted or not current:
        raise MalformedAttributePathError(text)
    segments.append(current)
    return tuple(segments)


def parse_components(text: str) -> Tuple[FlakeRefType, Params, Tuple[str, ...]]:
    """Parse text into (reference type, generic parameters, attribute path)"""
    if not text:
        raise EmptyLocatorError()
    if text != text.strip() or has_control_chars(text):
        raise WhitespaceInInputError(text)

    body, fragment = split_once(text, '#')
    attr_path = parse_attr_path(fragment) if fragment is not None else ()

    locator, query = split_once(body, '?')
    if not locator:
        raise EmptyLocatorError()

    params = parse_params(query)
    route = dispatch(locator)
    logger.debug("routing %r to %s extractor", locator, route.kind.value)

    ref_type, remaining = EXTRACTORS[route.kind](route, params)
    check_reserved_params(ref_type, remaining)
    validate_boolean_params(remaining)
    return ref_type, remaining, attr_path
