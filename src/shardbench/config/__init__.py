from shardbench.config.loader import (
    CONFIG_PATH_ENV_VAR,
    load_override_detailed,
    load_packaged_defaults_detailed,
    load_toml,
    resolve_defaults_path,
)
from shardbench.config.settings import (
    BUILTIN_SETTINGS,
    DEFAULT_RANDOM_SEED,
    SETTINGS_SCHEMA_VERSION,
    ConnectionSettings,
    HarnessSettings,
    RunSettings,
    WorkloadSettings,
    apply_environment,
    apply_overrides,
    load_settings,
    parse_settings,
)

__all__ = [
    "CONFIG_PATH_ENV_VAR",
    "resolve_defaults_path",
    "load_toml",
    "load_packaged_defaults_detailed",
    "load_override_detailed",
    "BUILTIN_SETTINGS",
    "DEFAULT_RANDOM_SEED",
    "SETTINGS_SCHEMA_VERSION",
    "ConnectionSettings",
    "HarnessSettings",
    "RunSettings",
    "WorkloadSettings",
    "apply_environment",
    "apply_overrides",
    "load_settings",
    "parse_settings",
]
