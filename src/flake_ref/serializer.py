"""Canonical rendering of a reference type, its parameters and attribute path"""

import re
from typing import List, Mapping, Optional, Sequence, Tuple

from .lexical import encode_ref, encode_segment
from .params import render_params
from .refs import RefOrRev, Reference, Revision
from .types import (
    File,
    FlakeRefType,
    Git,
    GitForge,
    Indirect,
    Mercurial,
    Path,
    Tarball,
    is_archive_url,
    url_scheme,
)

_BARE_ATTR_SEGMENT = re.compile(r"[A-Za-z0-9_'-]+")

Pairs = List[Tuple[str, str]]


def _ref_or_rev_param(ref_or_rev: RefOrRev) -> Tuple[str, str]:
    if isinstance(ref_or_rev, Revision):
        return ("rev", ref_or_rev.rev)
    return ("ref", ref_or_rev.name)


def _append_ref_or_rev(
    locator: str, ref_or_rev: Optional[RefOrRev], params: Mapping[str, str], typed: Pairs
) -> str:
    """Place ref_or_rev as a trailing segment, or as a parameter when the
    segment form would not read back the same"""
    if ref_or_rev is None:
        return locator
    if isinstance(ref_or_rev, Revision) and "ref" in params:
        typed.append(_ref_or_rev_param(ref_or_rev))
        return locator
    if isinstance(ref_or_rev, Reference) and ref_or_rev.looks_like_revision():
        typed.append(_ref_or_rev_param(ref_or_rev))
        return locator
    return f"{locator}/{encode_ref(str(ref_or_rev))}"


def _with_prefix(url: str, prefix: str, bare_schemes: Sequence[str]) -> str:
    """`<prefix>+<url>`, unless the URL's own scheme already names the type"""
    if url_scheme(url) in bare_schemes:
        return url
    return f"{prefix}+{url}"


def render_locator(ref_type: FlakeRefType, params: Mapping[str, str]) -> Tuple[str, Pairs]:
    """Render `<scheme>:<locator>` and the typed fields that travel as parameters"""
    typed: Pairs = []

    if isinstance(ref_type, GitForge):
        locator = (
            f"{ref_type.platform.value}:"
            f"{encode_segment(ref_type.owner)}/{encode_segment(ref_type.repo)}"
        )
        if ref_type.host_override is not None:
            typed.append(("host", ref_type.host_override))
        locator = _append_ref_or_rev(locator, ref_type.ref_or_rev, params, typed)
    elif isinstance(ref_type, Git):
        locator = _with_prefix(ref_type.url, "git", ("git",))
        if ref_type.ref_or_rev is not None:
            typed.append(_ref_or_rev_param(ref_type.ref_or_rev))
        if ref_type.shallow:
            typed.append(("shallow", "1"))
    elif isinstance(ref_type, Mercurial):
        locator = _with_prefix(ref_type.url, "hg", ("hg",))
        if ref_type.ref_or_rev is not None:
            typed.append(_ref_or_rev_param(ref_type.ref_or_rev))
    elif isinstance(ref_type, Tarball):
        if url_scheme(ref_type.url) in ("http", "https") and is_archive_url(ref_type.url):
            locator = ref_type.url
        else:
            locator = f"tarball+{ref_type.url}"
    elif isinstance(ref_type, File):
        locator = _with_prefix(ref_type.url, "file", ("file",))
    elif isinstance(ref_type, Path):
        locator = f"path:{ref_type.path}"
    elif isinstance(ref_type, Indirect):
        locator = _append_ref_or_rev(f"flake:{ref_type.id}", ref_type.ref_or_rev, params, typed)
    else:
        raise TypeError(f"Not a flake reference type: {ref_type!r}")

    return locator, typed


def render_attr_path(attr_path: Sequence[str]) -> str:
    return ".".join(
        segment if _BARE_ATTR_SEGMENT.fullmatch(segment) else f'"{segment}"'
        for segment in attr_path
    )


def render(
    ref_type: FlakeRefType, params: Mapping[str, str], attr_path: Sequence[str] = ()
) -> str:
    """Canonical text for a reference

    Typed fields that travel as parameters (host, ref, rev, shallow) come
    first, then the generic parameters in insertion order.
    """
    locator, typed = render_locator(ref_type, params)
    pairs = typed + list(params.items())

    text = locator
    if pairs:
        text += "?" + render_params(pairs)
    if attr_path:
        text += "#" + render_attr_path(attr_path)
    return text
