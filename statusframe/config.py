from __future__ import annotations

import copy
import logging
import os
from typing import Dict, Optional

import yaml
from watchdog.events import FileSystemEventHandler

logger = logging.getLogger(__name__)

CONFIG_ENV = "STATUSFRAME_CONFIG"
DEFAULT_CONFIG_PATH = "config.yaml"

# ------------------------------------------------------------------
# DEFAULT CONFIG
# ------------------------------------------------------------------
DEFAULT_CONFIG = {
    "server": {
        "host": "0.0.0.0",
        "port": 1312,
    },
    "display": {
        "timezone": None,
        "locale": "en",
        "rotation": 90,
        "grayscale": True,
        "gray_levels": 0,
        "font_family": "DejaVu Sans, sans-serif",
    },
    "calendar": {
        "feeds": [],
    },
    "weather": {
        "latitude": 48.85,
        "longitude": 2.35,
        "icon_base_url": "https://cdn.jsdelivr.net/gh/basmilius/weather-icons@dev/production/line/all",
    },
    "transit": {
        "departures_url": "",
        "api_key_env": "",
        "bike": {
            "status_url": "",
            "stations": [],
        },
    },
    "art": {
        "slots": [],
    },
    "http": {
        "timeout": 8,
        "user_agent": "statusframe/1.0",
    },
}


def merge_config(base: Dict, override: Optional[Dict]) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def config_path() -> str:
    return os.getenv(CONFIG_ENV) or DEFAULT_CONFIG_PATH


def read_config(path: str) -> Dict:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return merge_config(DEFAULT_CONFIG, data)


def load_config(path: Optional[str] = None) -> Dict:
    path = path or config_path()
    if not os.path.exists(path):
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(DEFAULT_CONFIG, f, sort_keys=False)
        logger.info("Wrote default configuration to %s", path)
    return read_config(path)


# ------------------------------------------------------------------
# CONFIG WATCHER
# ------------------------------------------------------------------
class ConfigFileHandler(FileSystemEventHandler):
    def __init__(self, path, callback):
        self.path = os.path.abspath(path)
        self.callback = callback

    def on_modified(self, event):
        if os.path.abspath(event.src_path) != self.path:
            return
        try:
            cfg = read_config(self.path)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logger.warning("Ignoring invalid config update in %s: %s", self.path, exc)
            return
        logger.info("Reloaded configuration from %s", self.path)
        self.callback(cfg)
