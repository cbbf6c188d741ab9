"""orjson encoding for report records, returned as text."""

from __future__ import annotations

from typing import Any

import orjson

_RECORD_OPTIONS = orjson.OPT_NON_STR_KEYS


def _default(value: Any):
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def json_dumps(payload: Any) -> str:
    return orjson.dumps(payload, default=_default, option=_RECORD_OPTIONS).decode("utf-8")
