"""Error hierarchy for flake reference parsing

Every failure raised by this package derives from FlakeRefError and carries
the offending value as attributes, so callers can build their own
diagnostics without re-parsing the message.
"""

from typing import Optional, Sequence


class FlakeRefError(Exception):
    """Base exception for flake reference errors"""
    pass


class EmptyLocatorError(FlakeRefError):
    """Reference or its locator portion is empty"""
    def __init__(self, kind: Optional[str] = None):
        self.kind = kind
        if kind is None:
            super().__init__("Flake reference cannot be empty")
        else:
            super().__init__(f"Locator for '{kind}' reference cannot be empty")


class WhitespaceInInputError(FlakeRefError):
    """Input has leading/trailing whitespace or control characters"""
    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Flake reference has surrounding whitespace or control characters: {text!r}")


class UnrecognizedSchemeError(FlakeRefError):
    """Scheme (or transport suffix) is not one this grammar knows"""
    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(f"Unrecognized flake reference scheme: '{scheme}'")


class MissingOwnerOrRepoError(FlakeRefError):
    """Forge reference lacks the owner or the repo segment"""
    def __init__(self, platform: str, missing: str):
        self.platform = platform
        self.missing = missing
        super().__init__(f"'{platform}' reference is missing the required '{missing}' segment")


class InvalidPathSegmentError(FlakeRefError):
    """Forge owner/repo segment has characters outside the path-segment set"""
    def __init__(self, segment: str, field: str):
        self.segment = segment
        self.field = field
        super().__init__(f"Invalid {field} segment: '{segment}'")


class InvalidIndirectIdError(FlakeRefError):
    """Registry identifier does not match [A-Za-z0-9_-]+"""
    def __init__(self, id: str):
        self.id = id
        super().__init__(f"Invalid indirect flake id: '{id}'")


class MalformedParameterError(FlakeRefError):
    """A key=value pair in the parameter tail is malformed"""
    def __init__(self, pair: str, reason: str):
        self.pair = pair
        self.reason = reason
        super().__init__(f"Malformed parameter '{pair}': {reason}")


class InvalidPercentEncodingError(FlakeRefError):
    """A '%' is not followed by exactly two hex digits"""
    def __init__(self, text: str, position: int):
        self.text = text
        self.position = position
        super().__init__(f"Invalid percent-encoding in '{text}' at position {position}")


class InvalidBooleanParameterError(FlakeRefError):
    """Boolean parameter value is not one of 1/0/true/false"""
    def __init__(self, key: str, value: str):
        self.key = key
        self.value = value
        super().__init__(f"Parameter '{key}' expects 1, 0, true or false, got '{value}'")


class InvalidRevisionFormatError(FlakeRefError):
    """Revision is not a 40 character hexadecimal string"""
    def __init__(self, rev: str):
        self.rev = rev
        super().__init__(f"Revision must be 40 hexadecimal characters, got '{rev}'")


class InvalidReferenceError(FlakeRefError):
    """Branch/tag name is empty or contains whitespace"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid ref name: {name!r}")


class ConflictingRefSpecificationError(FlakeRefError):
    """Both a trailing ref_or_rev segment and ref=/rev= parameters were given"""
    def __init__(self, segment: str, keys: Sequence[str]):
        self.segment = segment
        self.keys = tuple(keys)
        joined = ", ".join(f"{k}=" for k in self.keys)
        super().__init__(
            f"Trailing segment '{segment}' conflicts with explicit parameter(s) {joined}"
        )


class IncompatibleParameterError(FlakeRefError):
    """Parameter cannot be used with (or duplicates a field of) this reference type"""
    def __init__(self, key: str, kind: str):
        self.key = key
        self.kind = kind
        super().__init__(f"Parameter '{key}' is not allowed on '{kind}' references")


class InvalidHostOverrideError(FlakeRefError):
    """host= value is malformed or the platform does not allow overrides"""
    def __init__(self, host: str, platform: str):
        self.host = host
        self.platform = platform
        super().__init__(f"Invalid host override '{host}' for platform '{platform}'")


class InvalidPathError(FlakeRefError):
    """Path or URL locator contains characters that cannot appear unescaped"""
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Locator cannot contain '?' or '#': '{path}'")


class MalformedAttributePathError(FlakeRefError):
    """The #attr.path fragment is empty or has a bad segment"""
    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Malformed attribute path: '{text}'")
