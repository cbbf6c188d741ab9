from __future__ import annotations

import json
import logging
import re
from uuid import uuid4

try:
    import orjson as _orjson
except Exception:  # pragma: no cover - optional acceleration
    _orjson = None

_SENSITIVE_FIELD_TOKENS = (
    "password",
    "passwd",
    "secret",
    "token",
    "dsn",
)
# libpq keyword strings and postgres URIs can show up inside driver error text.
_CONNINFO_PASSWORD_RE = re.compile(r"(password\s*=\s*)('[^']*'|\S+)", re.IGNORECASE)
_URI_CREDENTIALS_RE = re.compile(r"(postgres(?:ql)?://[^:/@\s]+:)[^@\s]+@", re.IGNORECASE)
_REDACTED = "<redacted>"
_TRUNCATED_SUFFIX = "...<truncated>"
_MAX_LOG_STRING_CHARS = 2048
JOB_ID_LEN = 12
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _is_sensitive_key(key: str) -> bool:
    lowered = str(key).strip().lower()
    return any(token in lowered for token in _SENSITIVE_FIELD_TOKENS)


def scrub_credentials(text: str) -> str:
    text = _CONNINFO_PASSWORD_RE.sub(lambda match: match.group(1) + _REDACTED, text)
    return _URI_CREDENTIALS_RE.sub(lambda match: match.group(1) + _REDACTED + "@", text)


def _sanitize_log_value(key: str, value):
    if _is_sensitive_key(key):
        return _REDACTED
    if isinstance(value, str):
        value = scrub_credentials(value)
        if len(value) > _MAX_LOG_STRING_CHARS:
            return value[:_MAX_LOG_STRING_CHARS] + _TRUNCATED_SUFFIX
    return value


def _serialize_structured_payload(payload: dict[str, object]) -> str:
    if _orjson is not None:
        try:
            return _orjson.dumps(payload, default=str).decode("utf-8")
        except TypeError:
            # orjson rejects some payloads the stdlib accepts (for example int keys).
            pass
    return json.dumps(payload, default=str, ensure_ascii=False, separators=(",", ":"))


def new_job_id(prefix: str | None = None) -> str:
    token = uuid4().hex[:JOB_ID_LEN]
    cleaned = str(prefix or "").strip()
    if cleaned:
        return f"{cleaned}_{token}"
    return token


def log_structured_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields,
) -> dict[str, object]:
    """Log ``event`` and its non-``None`` fields as one compact JSON object."""
    payload: dict[str, object] = {"event": str(event)}
    payload.update({k: _sanitize_log_value(k, v) for k, v in fields.items() if v is not None})
    logger.log(level, _serialize_structured_payload(payload))
    return payload


def configure_cli_logging(level: int | str = logging.WARNING) -> None:
    """Install a stderr handler for CLI runs.

    Library modules only create loggers; the entry point owns handlers and levels.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=DEFAULT_LOG_FORMAT, force=True)
