"""Parameter tail parsing: `key=value&key2=value2`

The parser knows nothing about reference types. It turns the text after
the first '?' into an ordered mapping of decoded keys to decoded values;
the per-variant extractors decide which keys become typed fields.
"""

from typing import Dict, Iterable, Mapping, Optional, Tuple

from .errors import (
    InvalidBooleanParameterError,
    InvalidPercentEncodingError,
    MalformedParameterError,
)
from .lexical import encode_param, percent_decode, split_once


TRUE_VALUES = ("1", "true")
FALSE_VALUES = ("0", "false")

# Keys whose values must parse as booleans wherever they appear
BOOLEAN_PARAMETERS = frozenset({"shallow", "submodules", "allRefs", "exportIgnore", "lfs"})


def parse_params(query: Optional[str]) -> Dict[str, str]:
    """Parse a query tail into an ordered mapping

    - Pairs are separated by '&'; empty pairs (`a=1&&b=2`, a leading or
      trailing '&') are skipped
    - A pair without '=' is a key with an empty value
    - Keys and values are percent-decoded; '+' stays '+'
    - A duplicated key keeps the last value but its first-seen position
    """
    params: Dict[str, str] = {}
    if not query:
        return params

    for pair in query.split('&'):
        if not pair:
            continue
        raw_key, raw_value = split_once(pair, '=')
        if not raw_key:
            raise MalformedParameterError(pair, "empty key")
        try:
            key = percent_decode(raw_key)
            value = percent_decode(raw_value) if raw_value is not None else ""
        except InvalidPercentEncodingError as e:
            raise MalformedParameterError(pair, str(e)) from e
        params[key] = value

    return params


def parse_bool(key: str, value: str) -> bool:
    """Parse a boolean parameter value (1/0/true/false)"""
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise InvalidBooleanParameterError(key, value)


def validate_boolean_params(params: Mapping[str, str]) -> None:
    """Check every known boolean key present in params"""
    for key in BOOLEAN_PARAMETERS:
        if key in params:
            parse_bool(key, params[key])


def render_params(pairs: Iterable[Tuple[str, str]]) -> str:
    """Render pairs as `k=v&k2=v2` in the given order, percent-encoded"""
    return "&".join(f"{encode_param(k)}={encode_param(v)}" for k, v in pairs)
