"""Revision/reference values and the ref_or_rev disambiguator"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple, Union

from .errors import (
    ConflictingRefSpecificationError,
    InvalidReferenceError,
    InvalidRevisionFormatError,
)
from .lexical import REVISION_LENGTH, has_control_chars, is_hex, is_hex_revision


@dataclass(frozen=True)
class Revision:
    """An immutable commit identifier, always 40 lowercase hex characters"""
    rev: str

    def __post_init__(self) -> None:
        if len(self.rev) != REVISION_LENGTH or not is_hex(self.rev):
            raise InvalidRevisionFormatError(self.rev)
        object.__setattr__(self, "rev", self.rev.lower())

    def __str__(self) -> str:
        return self.rev


@dataclass(frozen=True)
class Reference:
    """A mutable named pointer (branch or tag)"""
    name: str

    def __post_init__(self) -> None:
        if not self.name or has_control_chars(self.name) or any(c.isspace() for c in self.name):
            raise InvalidReferenceError(self.name)

    def __str__(self) -> str:
        return self.name

    def looks_like_revision(self) -> bool:
        """True if a trailing segment with this name would parse as a Revision"""
        return is_hex_revision(self.name)


RefOrRev = Union[Revision, Reference]


def classify_segment(segment: str) -> RefOrRev:
    """Classify a trailing path segment

    Exactly 40 lowercase hex characters is a Revision, anything else a
    Reference. A branch whose name happens to be 40 hex characters is
    therefore always read as a revision.
    """
    if is_hex_revision(segment):
        return Revision(segment)
    return Reference(segment)


def resolve_ref_or_rev(
    segment: Optional[str], params: Mapping[str, str]
) -> Tuple[Optional[RefOrRev], Dict[str, str]]:
    """Reconcile a trailing segment with explicit ref=/rev= parameters

    Returns the resolved value (or None for "default branch") and the
    parameters that remain generic. When both ref= and rev= are given the
    revision wins and ref stays in the remaining parameters as a hint.
    """
    has_ref = "ref" in params
    has_rev = "rev" in params

    if segment is not None and (has_ref or has_rev):
        keys = [k for k in ("ref", "rev") if k in params]
        raise ConflictingRefSpecificationError(segment, keys)

    remaining = dict(params)
    if has_rev:
        value: Optional[RefOrRev] = Revision(remaining.pop("rev"))
        # ref (if any) is kept in place as a hint
    elif has_ref:
        value = Reference(remaining.pop("ref"))
    elif segment is not None:
        value = classify_segment(segment)
    else:
        value = None

    return value, remaining
