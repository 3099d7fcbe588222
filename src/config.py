from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml


DEFAULT_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"


class ConfigError(Exception):
    """Config file missing, unreadable or not valid YAML."""


@dataclass
class ScraperSettings:
    """Runtime knobs for both scrape paths.

    YAML layout (every key optional)::

        http:
          user_agent: "..."
          timeout_ms: 30000
          rate_limit_delay_ms: 1000
          workers: 10
        instagram:
          base_url: https://www.instagram.com
          workers: 5
          timeout_ms: 10000
          login_settle_ms: 3000
          dialog_settle_ms: 1000
          max_dialogs: 3
          list_container_selector: "div[role='dialog'] div.x1dm5mii"
          entry_text_selector: "span.x1lliihq"
          stable_iterations: 3
        ops:
          logging:
            ops_json: false
          log_path: out/ops.log
    """

    user_agent: str = DEFAULT_UA
    timeout_ms: int = 30000
    rate_limit_delay_ms: int = 1000
    http_workers: int = 10

    instagram_base_url: str = "https://www.instagram.com"
    instagram_workers: int = 5
    browser_timeout_ms: int = 10000
    login_settle_ms: int = 3000
    dialog_settle_ms: int = 1000
    max_dialogs: int = 3
    list_container_selector: str = "div[role='dialog'] div.x1dm5mii"
    entry_text_selector: str = "span.x1lliihq"
    stable_iterations: int = 3

    ops_json: bool = False
    ops_log_path: Optional[str] = None


# YAML (section, key) -> settings attribute
_YAML_KEYS = {
    ("http", "user_agent"): "user_agent",
    ("http", "timeout_ms"): "timeout_ms",
    ("http", "rate_limit_delay_ms"): "rate_limit_delay_ms",
    ("http", "workers"): "http_workers",
    ("instagram", "base_url"): "instagram_base_url",
    ("instagram", "workers"): "instagram_workers",
    ("instagram", "timeout_ms"): "browser_timeout_ms",
    ("instagram", "login_settle_ms"): "login_settle_ms",
    ("instagram", "dialog_settle_ms"): "dialog_settle_ms",
    ("instagram", "max_dialogs"): "max_dialogs",
    ("instagram", "list_container_selector"): "list_container_selector",
    ("instagram", "entry_text_selector"): "entry_text_selector",
    ("instagram", "stable_iterations"): "stable_iterations",
    ("ops", "log_path"): "ops_log_path",
}


def _coerce(value: Any, like: Any) -> Any:
    if isinstance(like, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(like, int):
        return int(value)
    if value is None:
        return None
    return str(value)


def read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists() or not path.is_file():
        raise ConfigError(f"file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"top-level YAML in {path} must be a mapping")
    return cfg


def settings_from_mapping(cfg: Mapping[str, Any]) -> ScraperSettings:
    settings = ScraperSettings()
    defaults = {f.name: getattr(settings, f.name) for f in fields(settings)}
    for (section, key), attr in _YAML_KEYS.items():
        block = cfg.get(section) or {}
        if isinstance(block, dict) and key in block:
            like = defaults[attr] if defaults[attr] is not None else ""
            try:
                setattr(settings, attr, _coerce(block[key], like))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{section}.{key}: {e}") from e
    ops_cfg = cfg.get("ops") or {}
    logging_cfg = ops_cfg.get("logging", {}) if isinstance(ops_cfg, dict) else {}
    if isinstance(logging_cfg, dict) and "ops_json" in logging_cfg:
        settings.ops_json = _coerce(logging_cfg["ops_json"], False)
    return settings


def load_settings(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> ScraperSettings:
    """Build settings from defaults, an optional YAML file and the environment."""
    env = os.environ if env is None else env
    cfg = read_config_file(Path(path)) if path else {}
    settings = settings_from_mapping(cfg)

    if env.get("HARVEST_OPS_JSON", "0") == "1":
        settings.ops_json = True
    if env.get("HARVEST_USER_AGENT"):
        settings.user_agent = env["HARVEST_USER_AGENT"]
    if env.get("HARVEST_HTTP_WORKERS"):
        try:
            settings.http_workers = int(env["HARVEST_HTTP_WORKERS"])
        except ValueError as e:
            raise ConfigError(f"HARVEST_HTTP_WORKERS must be an integer: {e}") from e

    if settings.http_workers < 1 or settings.instagram_workers < 1:
        raise ConfigError("worker pool sizes must be >= 1")
    if settings.stable_iterations < 1:
        raise ConfigError("instagram.stable_iterations must be >= 1")
    return settings
