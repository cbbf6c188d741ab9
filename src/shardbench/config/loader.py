from __future__ import annotations

import os
import tempfile
import tomllib
from functools import lru_cache
from importlib import resources as importlib_resources
from pathlib import Path

_RESOURCE_PACKAGE = "shardbench.config"
_DEFAULTS_FILE = "defaults.toml"
CONFIG_PATH_ENV_VAR = "SHARDBENCH_CONFIG_PATH"
_MAX_CONFIG_FILE_BYTES = 1_048_576
_RESOURCE_PATH_CACHE: dict[str, Path] = {}
_RESOURCE_TMPDIR: tempfile.TemporaryDirectory | None = None


def _pkg_config_path(filename: str) -> Path:
    resource = importlib_resources.files(_RESOURCE_PACKAGE).joinpath(filename)
    try:
        return Path(resource)
    except TypeError:
        global _RESOURCE_TMPDIR
        if _RESOURCE_TMPDIR is None:
            _RESOURCE_TMPDIR = tempfile.TemporaryDirectory(prefix="shardbench-config-")
        cached = _RESOURCE_PATH_CACHE.get(filename)
        if cached is not None and cached.exists():
            return cached
        materialized = Path(_RESOURCE_TMPDIR.name) / filename
        materialized.write_bytes(resource.read_bytes())
        _RESOURCE_PATH_CACHE[filename] = materialized
        return materialized


def resolve_defaults_path() -> Path:
    return _pkg_config_path(_DEFAULTS_FILE)


def resolve_override_path(explicit: str | os.PathLike | None = None) -> Path | None:
    if explicit is not None and str(explicit).strip():
        return Path(explicit)
    override = os.getenv(CONFIG_PATH_ENV_VAR, "").strip()
    if override:
        return Path(override)
    return None


def _path_cache_key(path: Path):
    resolved = path.expanduser().resolve()
    stat = resolved.stat()
    return str(resolved), int(stat.st_mtime_ns), int(stat.st_size)


@lru_cache(maxsize=64)
def _load_toml_cached(path_str: str, mtime_ns: int, size_bytes: int):
    _ = (mtime_ns, size_bytes)
    path = Path(path_str)
    with path.open("rb") as handle:
        return tomllib.load(handle)


def load_toml_detailed(path: Path) -> dict:
    path_str = str(path)
    try:
        cache_key = _path_cache_key(path)
    except FileNotFoundError:
        return {
            "ok": False,
            "payload": {},
            "path": path_str,
            "error_kind": "missing",
        }
    except OSError:
        return {
            "ok": False,
            "payload": {},
            "path": path_str,
            "error_kind": "unreadable",
        }
    if cache_key[2] > _MAX_CONFIG_FILE_BYTES:
        return {
            "ok": False,
            "payload": {},
            "path": cache_key[0],
            "error_kind": "oversized",
            "size_bytes": int(cache_key[2]),
        }
    try:
        loaded = _load_toml_cached(*cache_key)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError):
        return {
            "ok": False,
            "payload": {},
            "path": cache_key[0],
            "error_kind": "invalid_toml",
        }
    if not isinstance(loaded, dict):
        return {
            "ok": False,
            "payload": {},
            "path": cache_key[0],
            "error_kind": "invalid_shape",
        }
    return {
        "ok": True,
        "payload": loaded,
        "path": cache_key[0],
        "error_kind": None,
        "size_bytes": int(cache_key[2]),
    }


def load_toml(path: Path) -> dict:
    result = load_toml_detailed(path)
    payload = result.get("payload")
    return payload if isinstance(payload, dict) else {}


def load_packaged_defaults_detailed() -> dict:
    result = load_toml_detailed(resolve_defaults_path())
    result["source"] = "packaged_toml"
    return result


def load_override_detailed(explicit: str | os.PathLike | None = None) -> dict | None:
    path = resolve_override_path(explicit)
    if path is None:
        return None
    result = load_toml_detailed(path)
    result["source"] = "override_toml"
    return result
