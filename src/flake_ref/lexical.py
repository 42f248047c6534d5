"""Lexical primitives shared by every parsing layer"""

import string
from typing import Optional, Tuple
from urllib.parse import quote, unquote

from .errors import InvalidPercentEncodingError


HEX_DIGITS = frozenset(string.hexdigits)
LOWER_HEX_DIGITS = frozenset("0123456789abcdef")
REVISION_LENGTH = 40

# RFC 3986 unreserved and sub-delims, plus ':' and '@' (pchar without '%')
SEGMENT_SAFE = frozenset(string.ascii_letters + string.digits + "-._~!$&'()*+,;=:@")

# Characters left unescaped when serializing; everything the grammar
# splits on ('/', '?', '#', '&', '=', '%') must be escaped.
_SEGMENT_ENCODE_SAFE = "-._~!$'()*+,;:@"
_PARAM_ENCODE_SAFE = "-._~!$'()*+,;:@/"


def split_once(text: str, delimiter: str) -> Tuple[str, Optional[str]]:
    """Split on the first delimiter; the tail is None when it is absent"""
    pos = text.find(delimiter)
    if pos == -1:
        return text, None
    return text[:pos], text[pos + len(delimiter):]


def take_until(text: str, delimiters: str) -> Tuple[str, str]:
    """Consume text up to (not including) the first of any delimiter"""
    for pos, c in enumerate(text):
        if c in delimiters:
            return text[:pos], text[pos:]
    return text, ""


def strip_prefix(text: str, prefix: str) -> Optional[str]:
    """Return text without prefix, or None if it does not start with it"""
    if text.startswith(prefix):
        return text[len(prefix):]
    return None


def has_control_chars(text: str) -> bool:
    return any(ord(c) < 0x20 or ord(c) == 0x7f for c in text)


def is_segment_safe(text: str) -> bool:
    """Check that every character is a pchar or a (to-be-validated) '%'"""
    return all(c in SEGMENT_SAFE or c == '%' for c in text)


def is_hex_revision(text: str) -> bool:
    """Exactly 40 lowercase hex characters"""
    return len(text) == REVISION_LENGTH and all(c in LOWER_HEX_DIGITS for c in text)


def is_hex(text: str) -> bool:
    return bool(text) and all(c in HEX_DIGITS for c in text)


def validate_percent_escapes(text: str) -> None:
    """Raise if any '%' is not followed by exactly two hex digits"""
    pos = text.find('%')
    while pos != -1:
        escape = text[pos + 1:pos + 3]
        if len(escape) != 2 or not is_hex(escape):
            raise InvalidPercentEncodingError(text, pos)
        pos = text.find('%', pos + 3)


def percent_decode(text: str) -> str:
    """Strictly percent-decode text

    Unlike urllib's unquote, malformed escapes are an error rather than
    being passed through. '+' is not treated as a space.
    """
    validate_percent_escapes(text)
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        # escapes are well-formed but do not spell UTF-8
        raise InvalidPercentEncodingError(text, text.find('%')) from None


def encode_segment(text: str) -> str:
    """Encode a single path segment ('/' is escaped)"""
    return quote(text, safe=_SEGMENT_ENCODE_SAFE)


def encode_ref(text: str) -> str:
    """Encode a trailing ref_or_rev ('/' is kept, since refs may nest)"""
    return quote(text, safe=_SEGMENT_ENCODE_SAFE + "/")


def encode_param(text: str) -> str:
    """Encode a parameter key or value for the ?-tail"""
    return quote(text, safe=_PARAM_ENCODE_SAFE)
