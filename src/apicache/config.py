"""Configuration for request scopes: fetcher capability plus YAML/env settings."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping

import yaml

from .errors import MissingFetcherError

Fetcher = Callable[[Any, Mapping[str, Any]], Awaitable[Any]]


async def missing_fetcher(api: Any, variables: Mapping[str, Any]) -> Any:
    """Stand-in used when no fetcher was supplied. Always fails."""
    raise MissingFetcherError(details={"api": repr(api)})


@dataclass(frozen=True)
class HttpSettings:
    base_url: str = ""
    timeout_sec: float = 30.0


@dataclass(frozen=True)
class ApiCacheSettings:
    sequence_guard: bool = True
    log_lifecycle: bool = False
    hash_keys: bool = False
    http: HttpSettings = field(default_factory=HttpSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiCacheSettings":
        http_data = data.get("http", {}) or {}
        return cls(
            sequence_guard=_as_bool(data.get("sequence_guard", True)),
            log_lifecycle=_as_bool(data.get("log_lifecycle", False)),
            hash_keys=_as_bool(data.get("hash_keys", False)),
            http=HttpSettings(
                base_url=str(http_data.get("base_url", "") or ""),
                timeout_sec=float(http_data.get("timeout_sec", 30.0)),
            ),
        )


@dataclass(frozen=True)
class ApiConfig:
    """What a scope hands to every controller created beneath it."""
    fetcher: Fetcher = missing_fetcher
    settings: ApiCacheSettings = field(default_factory=ApiCacheSettings)


ENV_MAP = {
    "sequence_guard": "APICACHE_SEQUENCE_GUARD",
    "log_lifecycle": "APICACHE_LOG_LIFECYCLE",
    "hash_keys": "APICACHE_HASH_KEYS",
    "http.base_url": "APICACHE_HTTP_BASE_URL",
    "http.timeout_sec": "APICACHE_HTTP_TIMEOUT_SEC",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean setting: {value!r}")


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    merged = json.loads(json.dumps(config_data))  # deep copy via json

    for dotted_key, env_name in ENV_MAP.items():
        if env_name not in os.environ:
            continue
        value: Any = os.environ[env_name]
        target = merged
        parts = dotted_key.split(".")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        last = parts[-1]
        if last == "timeout_sec":
            value = float(value)
        elif last in {"sequence_guard", "log_lifecycle", "hash_keys"}:
            value = _as_bool(value)
        target[last] = value

    return merged


def load_settings(config_path: str | Path = "config/apicache.defaults.yml") -> ApiCacheSettings:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    data = merge_env_overrides(data)
    return ApiCacheSettings.from_dict(data)
