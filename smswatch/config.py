"""
smswatch/config.py
Config with defaults, file override and environment fallbacks.
Persists to smswatch_config.json in the project root.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "smswatch_config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "adb": {
        "path": "adb",
        "device_ip": "",
        "port": 5555,
        "command_timeout_ms": 10000,
    },
    "monitoring": {
        "polling_interval_ms": 5000,
        "max_messages": 50,
    },
    "filters": {
        "mode": "None",          # None / Include / Exclude
        "sources": [],           # [{"value": ..., "match_type": "Exact|Contains|Regex", "label": ...}]
    },
    "otp": {
        "enabled": True,
        "highlight_threshold": 0.7,
    },
    "agent": {
        "enabled": False,
        "backend": "anthropic",  # anthropic / ollama
        "api_key": "",
        "model": "claude-sonnet-4-20250514",
        "max_tokens": 256,
        "timeout_sec": 15,
        "ollama_host": "http://localhost:11434",
        "ollama_model": "llama3.1:8b",
    },
    "api": {
        "host": "127.0.0.1",
        "port": 8766,
    },
}

# Environment variable → (section, key). Used only when the file leaves the value empty.
ENV_FALLBACKS = {
    "ANTHROPIC_API_KEY": ("agent", "api_key"),
    "SMSWATCH_DEVICE_IP": ("adb", "device_ip"),
}


def _config_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path.cwd()
    return root / CONFIG_FILENAME


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Load config from smswatch_config.json. Returns defaults if missing or unreadable."""
    path = _config_path(project_root)
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return _merge(DEFAULT_CONFIG, data)
            logger.warning(f"Config {path} is not a JSON object — using defaults")
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Config load failed: {e}")
    return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any], project_root: Optional[Path] = None) -> Path:
    """Persist config to smswatch_config.json."""
    path = _config_path(project_root)
    path.write_text(json.dumps(config, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def apply_env(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Fill empty values from the environment. Mutates and returns config."""
    environ = os.environ if environ is None else environ
    for var, (section, key) in ENV_FALLBACKS.items():
        value = environ.get(var, "")
        if value and not config.get(section, {}).get(key):
            config.setdefault(section, {})[key] = value
    return config


def ensure_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load config, then fill empty values from the environment.
    Returns merged config.
    """
    return apply_env(load_config(project_root))
