"""Request parameter encoding.

GET/DELETE parameters become a percent-encoded query string; write verbs
send a JSON body. Both paths share one value serializer so a TimeFrame,
datetime or Decimal is rendered the same way everywhere.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from urllib.parse import quote

from alpaca_trade.timeframe import TimeFrame
from alpaca_trade.utils.time import format_query_time

QUERY_METHODS = frozenset({"GET", "DELETE"})

# Query-string key renames. Callers pass ``stop`` because ``end`` reads
# badly as a keyword argument; the API only understands ``end``.
_QUERY_KEY_RENAMES: dict[str, str] = {"stop": "end"}


def encode_value(value: Any) -> Any:
    """Reduce a parameter value to a JSON-compatible scalar or list."""
    if isinstance(value, bool):
        return value
    if isinstance(value, TimeFrame):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return format_query_time(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [encode_value(item) for item in value]
    return value


def _query_text(value: Any) -> str:
    encoded = encode_value(value)
    if isinstance(encoded, bool):
        return "true" if encoded else "false"
    if isinstance(encoded, list):
        return ",".join(_query_text(item) for item in encoded)
    return str(encoded)


def encode_query(params: Mapping[str, Any] | None) -> str:
    """Build a query string; ``None`` values contribute nothing."""
    if not params:
        return ""
    pairs: list[str] = []
    for key, value in params.items():
        if value is None:
            continue
        name = _QUERY_KEY_RENAMES.get(key, key)
        pairs.append(f"{quote(name, safe='')}={quote(_query_text(value), safe='')}")
    return "&".join(pairs)


def _json_default(value: Any) -> Any:
    encoded = encode_value(value)
    if encoded is value:
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
    return encoded


def encode_body(params: Mapping[str, Any] | None) -> str:
    """Serialize write-verb parameters as JSON, dropping ``None`` values."""
    if not params:
        return ""
    data = {key: encode_value(value) for key, value in params.items() if value is not None}
    return json.dumps(data, default=_json_default)


def encode_params(method: str, params: Mapping[str, Any] | None) -> tuple[str, str]:
    """Split parameters into ``(query, body)`` according to the HTTP verb."""
    if method.upper() in QUERY_METHODS:
        return encode_query(params), ""
    return "", encode_body(params)


def join_symbols(symbols: Iterable[str]) -> str:
    """Comma-join symbols in the given order."""
    return ",".join(symbols)
