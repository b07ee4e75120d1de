"""Zen Configuration - project-level .zenrc.yml support.

Loads configuration from .zenrc.yml (or .zenrc.yaml, .zenrc.json,
zen.config.yml, zen.config.json), searching upward from the working
directory.

Example .zenrc.yml:
    source: src/main.edn     # file used when the CLI gets none
    output: build/program.wasm
    verify: true             # stack type check during compile
    log_level: INFO
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "main.edn"
DEFAULT_OUTPUT = "program.wasm"


@dataclass
class ZenConfig:
    """Project-level Zen configuration."""
    source: str = DEFAULT_SOURCE
    output: str = DEFAULT_OUTPUT
    # Run the stack type checker on compile and log its issues
    verify: bool = True
    log_level: str = "WARNING"


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".zenrc.yml",
    ".zenrc.yaml",
    ".zenrc.json",
    "zen.config.yml",
    "zen.config.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> ZenConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, or it cannot be read, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return ZenConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        logger.warning("cannot read config %s: %s", path, e)
        return ZenConfig()

    try:
        if path.endswith(".json"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        logger.warning("ignoring malformed config %s: %s", path, e)
        return ZenConfig()

    if not isinstance(data, dict):
        return ZenConfig()

    logger.debug("loaded config from %s", path)
    return _dict_to_config(data)


def _dict_to_config(data: Dict[str, Any]) -> ZenConfig:
    """Convert a parsed dict to ZenConfig."""
    config = ZenConfig()

    if data.get("source"):
        config.source = str(data["source"])
    if data.get("output"):
        config.output = str(data["output"])
    if "verify" in data:
        config.verify = bool(data["verify"])
    if data.get("log_level"):
        config.log_level = str(data["log_level"]).upper()

    return config
