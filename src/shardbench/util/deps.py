from __future__ import annotations

from functools import lru_cache
from importlib import import_module

MISSING_DEP_TEMPLATE = "{pkg} is required for {api_name}. Install with: pip install {pkg}"


@lru_cache(maxsize=4)
def _optional_module(module_name):
    try:
        return import_module(module_name)
    except ImportError:
        return None


def _require(module_name, pkg, api_name):
    module = _optional_module(module_name)
    if module is None:
        raise ImportError(MISSING_DEP_TEMPLATE.format(pkg=pkg, api_name=api_name))
    return module


def require_psycopg(api_name):
    return _require("psycopg", "psycopg[binary]", api_name)


def require_duckdb(api_name):
    return _require("duckdb", "duckdb", api_name)
