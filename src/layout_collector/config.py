from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .themes import DEFAULT_THEME, THEMES

# Local Supabase stack default – override via SUPABASE_URL env var or config file.
_DEFAULT_SUPABASE_URL = "http://localhost:54321"

CONFIG_PATH = Path.home() / ".config" / "layout-collector" / "config.yml"
DATA_DIR = Path.home() / ".local" / "share" / "layout-collector"


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class AppConfig:
    supabase_url: str = _DEFAULT_SUPABASE_URL
    supabase_anon_key: str = ""
    table: str = "layouts"
    bucket: str = "screenshots"
    request_timeout: float = 20.0   # seconds per store request
    theme: str = DEFAULT_THEME
    config_version: int = 1


def _validate(cfg: dict[str, Any]) -> dict[str, Any]:
    defaults = AppConfig().__dict__.copy()
    merged = {**defaults, **cfg}
    for key in ("supabase_url", "table", "bucket"):
        if not isinstance(merged.get(key), str) or not merged[key].strip():
            merged[key] = defaults[key]
        else:
            merged[key] = merged[key].strip()
    merged["supabase_url"] = merged["supabase_url"].rstrip("/")
    if not isinstance(merged.get("supabase_anon_key"), str):
        merged["supabase_anon_key"] = defaults["supabase_anon_key"]
    raw_timeout = merged.get("request_timeout", defaults["request_timeout"])
    merged["request_timeout"] = (
        float(raw_timeout)
        if isinstance(raw_timeout, (int, float)) and not isinstance(raw_timeout, bool) and float(raw_timeout) > 0
        else defaults["request_timeout"]
    )
    if merged.get("theme") not in THEMES:
        merged["theme"] = defaults["theme"]
    merged["config_version"] = defaults["config_version"]
    return {key: merged[key] for key in defaults}


def apply_env_overrides(cfg: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *cfg* with SUPABASE_URL / SUPABASE_ANON_KEY applied.

    Overrides are never written back to the config file.
    """
    result = dict(cfg)
    url = os.environ.get("SUPABASE_URL", "").strip()
    if url:
        result["supabase_url"] = url.rstrip("/")
    key = os.environ.get("SUPABASE_ANON_KEY", "").strip()
    if key:
        result["supabase_anon_key"] = key
    return result


def load_config(path: Path = CONFIG_PATH) -> dict[str, Any]:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        cfg = _validate({})
        save_config(cfg, path)
        return apply_env_overrides(cfg)

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    cfg = _validate(raw if isinstance(raw, dict) else {})
    if cfg != raw:
        save_config(cfg, path)
    return apply_env_overrides(cfg)


def save_config(cfg: dict[str, Any], path: Path = CONFIG_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    validated = _validate(cfg)
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(yaml.safe_dump(validated, sort_keys=True), encoding="utf-8")
    tmp_path.replace(path)
