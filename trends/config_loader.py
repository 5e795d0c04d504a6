"""
Load the optional provider overrides YAML (``TRENDS_CONFIG_PATH``) with env expansion.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("trends.yaml")


def load_providers_config(path: Optional[Path] = None) -> Dict[str, Any]:
    env_path = os.getenv("TRENDS_CONFIG_PATH")
    config_path = path or (Path(env_path) if env_path else DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        if path is not None or env_path:
            logger.warning("Trends config not found at %s", config_path)
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        logger.error("Invalid YAML in %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.error("Trends config %s must be a mapping; ignoring.", config_path)
        return {}
    return _expand_env(data)


def _expand_env(data: Dict[str, Any]) -> Dict[str, Any]:
    def replace(value: Any) -> Any:
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            env_key = value[2:-1]
            return os.getenv(env_key, "")
        if isinstance(value, dict):
            return {k: replace(v) for k, v in value.items()}
        if isinstance(value, list):
            return [replace(item) for item in value]
        return value

    return replace(data)  # type: ignore[return-value]
