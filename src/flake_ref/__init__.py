"""Flake references - parse, normalize and serialize source locators

This package turns the many surface forms of a flake reference
(`github:owner/repo/ref`, `git+https://...?ref=main`, `./path`, `nixpkgs`)
into one typed, immutable value and renders it back in canonical form.
"""

from .errors import (
    FlakeRefError,
    EmptyLocatorError,
    WhitespaceInInputError,
    UnrecognizedSchemeError,
    MissingOwnerOrRepoError,
    InvalidPathSegmentError,
    InvalidIndirectIdError,
    MalformedParameterError,
    InvalidPercentEncodingError,
    InvalidBooleanParameterError,
    InvalidRevisionFormatError,
    InvalidReferenceError,
    ConflictingRefSpecificationError,
    IncompatibleParameterError,
    InvalidHostOverrideError,
    InvalidPathError,
    MalformedAttributePathError,
)
from .refs import Revision, Reference, RefOrRev, classify_segment, resolve_ref_or_rev
from .types import (
    RefKind,
    ForgePlatform,
    PlatformPolicy,
    PLATFORM_POLICIES,
    GitForge,
    Git,
    Mercurial,
    Tarball,
    File,
    Path,
    Indirect,
    FlakeRefType,
)
from .reference import (
    FlakeRef,
    FlakeRefBuilder,
    parse,
    serialize,
    canonical,
    convert_or_parse,
)

__version__ = "0.1.0"

__all__ = [
    "FlakeRef",
    "FlakeRefBuilder",
    "parse",
    "serialize",
    "canonical",
    "convert_or_parse",
    "RefKind",
    "ForgePlatform",
    "PlatformPolicy",
    "PLATFORM_POLICIES",
    "GitForge",
    "Git",
    "Mercurial",
    "Tarball",
    "File",
    "Path",
    "Indirect",
    "FlakeRefType",
    "Revision",
    "Reference",
    "RefOrRev",
    "classify_segment",
    "resolve_ref_or_rev",
    "FlakeRefError",
    "EmptyLocatorError",
    "WhitespaceInInputError",
    "UnrecognizedSchemeError",
    "MissingOwnerOrRepoError",
    "InvalidPathSegmentError",
    "InvalidIndirectIdError",
    "MalformedParameterError",
    "InvalidPercentEncodingError",
    "InvalidBooleanParameterError",
    "InvalidRevisionFormatError",
    "InvalidReferenceError",
    "ConflictingRefSpecificationError",
    "IncompatibleParameterError",
    "InvalidHostOverrideError",
    "InvalidPathError",
    "MalformedAttributePathError",
]
