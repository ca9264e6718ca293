"""Render query parameters as Cypher literal text.

Parameters travel inside the query string as a ``CYPHER name=literal ...``
prelude, so every value must be rendered as text the server parses back to
the same value.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence, Union

from .entities import Point
from .errors import EncodingError

_IDENTIFIER_REGEX = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1

ParamValue = Union[None, bool, int, float, str, bytes, Sequence[Any], Mapping[str, Any], Point]


def _ensure_identifier(name: Any, ctx: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER_REGEX.match(name):
        raise EncodingError(f"{ctx} must be an identifier, got {name!r}")
    return name


def quote_string(value: Union[str, bytes]) -> str:
    """Single-quote ``value``, escaping backslashes and both quote characters."""
    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode("utf-8")
        except UnicodeDecodeError as err:
            raise EncodingError(f"byte string parameter is not valid UTF-8: {err}") from err
    # Backslashes first so the escapes added below are not doubled.
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace('"', '\\"')
    return f"'{escaped}'"


def _format_float(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        raise EncodingError("float parameter must be finite")
    # repr() is the shortest text that round-trips; Decimal lays it out without an exponent.
    text = format(Decimal(repr(value)), "f")
    if "." not in text:
        text += ".0"
    return text


def encode_parameter(value: Any) -> str:
    """Render one parameter value as a Cypher literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if value < _I64_MIN or value > _I64_MAX:
            raise EncodingError("integer parameter must fit within signed 64-bit range")
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, (str, bytes, bytearray)):
        return quote_string(value)
    if isinstance(value, Point):
        return f"point({{latitude:{_format_float(float(value.x))},longitude:{_format_float(float(value.y))}}})"
    if isinstance(value, Mapping):
        items = []
        for key, item in value.items():
            items.append(f"{_ensure_identifier(key, 'map parameter key')}:{encode_parameter(item)}")
        return "{" + ",".join(items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(encode_parameter(item) for item in value) + "]"
    raise EncodingError(f"unsupported parameter type: {type(value)!r}")


def build_params_header(params: Optional[Mapping[str, Any]]) -> str:
    """Build the ``CYPHER a=1 b='x' `` prelude, or an empty string."""
    if not params:
        return ""
    if not isinstance(params, Mapping):
        raise EncodingError("params must be a mapping of parameter name -> value")
    parts = []
    for name, value in params.items():
        parts.append(f"{_ensure_identifier(name, 'parameter name')}={encode_parameter(value)}")
    return "CYPHER " + " ".join(parts) + " "


def prepare_query(query: str, params: Optional[Mapping[str, Any]] = None) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ValueError("query must be a non-empty string")
    return build_params_header(params) + query
