from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

from shardbench.backends import VALID_BACKENDS
from shardbench.config.loader import load_override_detailed, load_packaged_defaults_detailed
from shardbench.errors import ConfigError
from shardbench.schema import ON_CONFLICT_FAIL, VALID_ON_CONFLICT
from shardbench.util.logging import log_structured_event

SETTINGS_SCHEMA_VERSION = 1
DEFAULT_RANDOM_SEED = 20240501
RANDOM_SEED_TOKENS = frozenset({"random", "none", "null"})
_MAX_CONFIG_STRING_LENGTH = 256
_MAX_CONFIG_INT = 1_000_000_000
_SETTINGS_LOG = logging.getLogger("shardbench.config.settings")

# libpq environment names, as exported by the service bootstrap.
PG_ENV_VARS = {
    "host": "PGHOST",
    "port": "PGPORT",
    "user": "PGUSER",
    "password": "PGPASSWORD",
    "dbname": "PGDATABASE",
}


@dataclass(frozen=True)
class WorkloadSettings:
    num_topics: int = 300
    num_shards: int = 98
    num_messages: int = 500
    msg_id_range: int = 10_000_000
    lookup_batch_size: int = 1000
    random_seed: int | None = DEFAULT_RANDOM_SEED


@dataclass(frozen=True)
class ConnectionSettings:
    host: str = "localhost"
    port: int = 5432
    user: str = "test"
    password: str | None = None
    dbname: str = "testdb"
    connect_timeout_seconds: int = 10


@dataclass(frozen=True)
class RunSettings:
    backend: str = "postgres"
    duckdb_path: str = ":memory:"
    on_conflict: str = ON_CONFLICT_FAIL
    drop_after: bool = False


@dataclass(frozen=True)
class HarnessSettings:
    workload: WorkloadSettings = WorkloadSettings()
    connection: ConnectionSettings = ConnectionSettings()
    run: RunSettings = RunSettings()
    source: str = "builtin"

    def summary(self) -> dict[str, object]:
        return {
            "backend": self.run.backend,
            "num_topics": self.workload.num_topics,
            "num_shards": self.workload.num_shards,
            "num_messages": self.workload.num_messages,
            "msg_id_range": self.workload.msg_id_range,
            "lookup_batch_size": self.workload.lookup_batch_size,
            "random_seed": self.workload.random_seed,
            "on_conflict": self.run.on_conflict,
            "settings_source": self.source,
        }


BUILTIN_SETTINGS = HarnessSettings()


def _to_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    return {}


def _parse_positive_int(raw: Any, default: int) -> int:
    if raw is None or isinstance(raw, bool):
        return int(default)
    try:
        parsed = int(raw)
    except (TypeError, ValueError):
        return int(default)
    if parsed <= 0:
        return int(default)
    return min(parsed, _MAX_CONFIG_INT)


def _parse_seed(raw: Any, default: int | None) -> int | None:
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, str) and raw.strip().lower() in RANDOM_SEED_TOKENS:
        return None
    try:
        parsed = int(raw)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def _parse_choice(raw: Any, default: str, valid_values: frozenset[str]) -> str:
    if raw is None:
        return str(default)
    value = str(raw).strip().lower()
    if len(value) > _MAX_CONFIG_STRING_LENGTH:
        return str(default)
    return value if value in valid_values else str(default)


def _parse_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in {"1", "true", "yes", "on"}:
            return True
        if value in {"0", "false", "no", "off"}:
            return False
    return bool(default)


def _parse_small_string(raw: Any, default: str | None) -> str | None:
    if raw is None:
        return default
    value = str(raw).strip()
    if not value or len(value) > _MAX_CONFIG_STRING_LENGTH:
        return default
    return value


def parse_settings(payload: Mapping[str, Any] | None, *, base: HarnessSettings | None = None) -> HarnessSettings:
    """Overlay a TOML payload on ``base``; unusable values keep the base value."""
    root = _to_mapping(payload)
    settings = BUILTIN_SETTINGS if base is None else base

    workload_raw = _to_mapping(root.get("workload"))
    workload_base = settings.workload
    workload = WorkloadSettings(
        num_topics=_parse_positive_int(workload_raw.get("num_topics"), workload_base.num_topics),
        num_shards=_parse_positive_int(workload_raw.get("num_shards"), workload_base.num_shards),
        num_messages=_parse_positive_int(workload_raw.get("num_messages"), workload_base.num_messages),
        msg_id_range=_parse_positive_int(workload_raw.get("msg_id_range"), workload_base.msg_id_range),
        lookup_batch_size=_parse_positive_int(
            workload_raw.get("lookup_batch_size"),
            workload_base.lookup_batch_size,
        ),
        random_seed=_parse_seed(workload_raw.get("random_seed"), workload_base.random_seed),
    )

    connection_raw = _to_mapping(root.get("connection"))
    connection_base = settings.connection
    connection = ConnectionSettings(
        host=_parse_small_string(connection_raw.get("host"), connection_base.host),
        port=_parse_positive_int(connection_raw.get("port"), connection_base.port),
        user=_parse_small_string(connection_raw.get("user"), connection_base.user),
        password=_parse_small_string(connection_raw.get("password"), connection_base.password),
        dbname=_parse_small_string(connection_raw.get("dbname"), connection_base.dbname),
        connect_timeout_seconds=_parse_positive_int(
            connection_raw.get("connect_timeout_seconds"),
            connection_base.connect_timeout_seconds,
        ),
    )

    run_raw = _to_mapping(root.get("run"))
    run_base = settings.run
    run = RunSettings(
        backend=_parse_choice(run_raw.get("backend"), run_base.backend, VALID_BACKENDS),
        duckdb_path=_parse_small_string(run_raw.get("duckdb_path"), run_base.duckdb_path),
        on_conflict=_parse_choice(run_raw.get("on_conflict"), run_base.on_conflict, VALID_ON_CONFLICT),
        drop_after=_parse_bool(run_raw.get("drop_after"), run_base.drop_after),
    )
    return HarnessSettings(workload=workload, connection=connection, run=run, source=settings.source)


def _schema_status(payload: Mapping[str, Any], *, require_schema: bool) -> tuple[bool, str]:
    meta = _to_mapping(payload.get("meta"))
    raw = meta.get("schema_version")
    if raw is None:
        if require_schema:
            return False, "missing"
        return True, "absent"
    try:
        version = int(raw)
    except (TypeError, ValueError):
        return False, "mismatch"
    if version != SETTINGS_SCHEMA_VERSION:
        return False, "mismatch"
    return True, "ok"


def _log_settings_source(source: str, *, path: str | None, error_kind: str | None, used_fallback: bool) -> None:
    level = logging.WARNING if used_fallback else logging.DEBUG
    log_structured_event(
        _SETTINGS_LOG,
        level,
        "settings_source",
        source=source,
        path=path,
        error_kind=error_kind,
        used_fallback=bool(used_fallback),
    )


def _apply_toml_layer(settings: HarnessSettings, result: Mapping[str, Any], *, require_schema: bool) -> HarnessSettings:
    source = str(result.get("source") or "toml")
    path = result.get("path")
    payload = result.get("payload")
    if not result.get("ok") or not isinstance(payload, Mapping):
        _log_settings_source(source, path=path, error_kind=result.get("error_kind"), used_fallback=True)
        return settings
    schema_ok, schema_state = _schema_status(payload, require_schema=require_schema)
    if not schema_ok:
        _log_settings_source(source, path=path, error_kind=f"schema_{schema_state}", used_fallback=True)
        return settings
    _log_settings_source(source, path=path, error_kind=None, used_fallback=False)
    return replace(parse_settings(payload, base=settings), source=source)


def apply_environment(settings: HarnessSettings, environ: Mapping[str, str] | None = None) -> HarnessSettings:
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {}
    for field_name, var_name in PG_ENV_VARS.items():
        value = str(env.get(var_name, "")).strip()
        if value:
            raw[field_name] = value
    if not raw:
        return settings
    return parse_settings({"connection": raw}, base=settings)


def _strict_positive_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be a positive integer, got {value!r}")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{section}.{key} must be a positive integer, got {value!r}", exc) from exc
    if parsed <= 0:
        raise ConfigError(f"{section}.{key} must be a positive integer, got {value!r}")
    return parsed


def _strict_value(section: str, key: str, value: Any, current: Any) -> Any:
    if key == "random_seed":
        if isinstance(value, str) and value.strip().lower() in RANDOM_SEED_TOKENS:
            return None
        try:
            seed = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{section}.random_seed must be an integer or 'random', got {value!r}", exc) from exc
        if seed < 0:
            raise ConfigError(f"{section}.random_seed must be non-negative, got {seed}")
        return seed
    if key == "backend":
        choice = str(value).strip().lower()
        if choice not in VALID_BACKENDS:
            raise ConfigError(f"run.backend must be one of {sorted(VALID_BACKENDS)}, got {value!r}")
        return choice
    if key == "on_conflict":
        choice = str(value).strip().lower()
        if choice not in VALID_ON_CONFLICT:
            raise ConfigError(f"run.on_conflict must be one of {sorted(VALID_ON_CONFLICT)}, got {value!r}")
        return choice
    if isinstance(current, bool):
        return bool(value)
    if isinstance(current, int):
        return _strict_positive_int(section, key, value)
    return None if value is None else str(value)


def apply_overrides(
    settings: HarnessSettings,
    overrides: Mapping[str, Mapping[str, Any]] | None,
) -> HarnessSettings:
    """Apply explicit (command-line) values; unlike TOML layers these must be valid."""
    if not overrides:
        return settings
    sections = {"workload": settings.workload, "connection": settings.connection, "run": settings.run}
    updated = dict(sections)
    for section, values in overrides.items():
        if section not in sections:
            raise ConfigError(f"unknown settings section {section!r}")
        current_section = sections[section]
        changes: dict[str, Any] = {}
        for key, value in _to_mapping(values).items():
            if value is None:
                continue
            if not hasattr(current_section, key):
                raise ConfigError(f"unknown setting {section}.{key}")
            changes[key] = _strict_value(section, key, value, getattr(current_section, key))
        if changes:
            updated[section] = replace(current_section, **changes)
    return replace(settings, **updated)


def load_settings(
    *,
    config_path: str | os.PathLike | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
) -> HarnessSettings:
    """Resolve settings: builtin < packaged TOML < override TOML < PG* env < overrides."""
    settings = _apply_toml_layer(BUILTIN_SETTINGS, load_packaged_defaults_detailed(), require_schema=True)
    override = load_override_detailed(config_path)
    if override is not None:
        if config_path is not None and not override.get("ok"):
            raise ConfigError(f"cannot load config file {override.get('path')}: {override.get('error_kind')}")
        settings = _apply_toml_layer(settings, override, require_schema=False)
    settings = apply_environment(settings, environ)
    return apply_overrides(settings, overrides)
