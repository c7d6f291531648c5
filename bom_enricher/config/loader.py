from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..catalog.jlcpcb import DEFAULT_SEARCH_URL, DEFAULT_USER_AGENT

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/enrich.yml``)
- Validate against the packaged JSON schema
- Apply defaults for every omitted key
- Apply ``BOM_ENRICHER_*`` environment overrides (see ``apply_env_overrides``)
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/enrich.yml")

ENV_MAX_CONCURRENT = "BOM_ENRICHER_MAX_CONCURRENT"
ENV_DELAY_MS = "BOM_ENRICHER_DELAY_MS"
ENV_CATALOG_URL = "BOM_ENRICHER_CATALOG_URL"
ENV_TIMEOUT = "BOM_ENRICHER_TIMEOUT"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class RateLimitConfig:
    max_concurrent: int = 2
    delay_ms: int = 500


@dataclass(frozen=True)
class CatalogConfig:
    base_url: str = DEFAULT_SEARCH_URL
    timeout_seconds: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class ExportConfig:
    format: str = "xlsx"  # xlsx | csv
    sheet_name: str = "BOM"


@dataclass(frozen=True)
class EnricherConfig:
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    logs_directory: str = "./logs"


def default_config() -> EnricherConfig:
    return EnricherConfig()


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the packaged JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> EnricherConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    rl = data.get("rate_limit", {})
    cat = data.get("catalog", {})
    exp = data.get("export", {})
    defaults = default_config()
    return EnricherConfig(
        rate_limit=RateLimitConfig(
            max_concurrent=rl.get("max_concurrent", defaults.rate_limit.max_concurrent),
            delay_ms=rl.get("delay_ms", defaults.rate_limit.delay_ms),
        ),
        catalog=CatalogConfig(
            base_url=cat.get("base_url", defaults.catalog.base_url),
            timeout_seconds=float(cat.get("timeout_seconds", defaults.catalog.timeout_seconds)),
            user_agent=cat.get("user_agent", defaults.catalog.user_agent),
        ),
        export=ExportConfig(
            format=exp.get("format", defaults.export.format),
            sheet_name=exp.get("sheet_name", defaults.export.sheet_name),
        ),
        logs_directory=data.get("logs_directory", defaults.logs_directory),
    )


def _env_number(env: Mapping[str, str], name: str, cast: type, minimum: float) -> Any:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number: {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}: {raw!r}")
    return value


def apply_env_overrides(cfg: EnricherConfig, env: Mapping[str, str] | None = None) -> EnricherConfig:
    """Return ``cfg`` with ``BOM_ENRICHER_*`` environment values applied.

    Environment values take precedence over the YAML file.
    """
    env = os.environ if env is None else env
    max_concurrent = _env_number(env, ENV_MAX_CONCURRENT, int, 1)
    delay_ms = _env_number(env, ENV_DELAY_MS, int, 0)
    timeout = _env_number(env, ENV_TIMEOUT, float, 0.001)
    base_url = env.get(ENV_CATALOG_URL) or None

    rate_limit = cfg.rate_limit
    if max_concurrent is not None:
        rate_limit = replace(rate_limit, max_concurrent=max_concurrent)
    if delay_ms is not None:
        rate_limit = replace(rate_limit, delay_ms=delay_ms)
    catalog = cfg.catalog
    if base_url is not None:
        catalog = replace(catalog, base_url=base_url)
    if timeout is not None:
        catalog = replace(catalog, timeout_seconds=timeout)
    return replace(cfg, rate_limit=rate_limit, catalog=catalog)
