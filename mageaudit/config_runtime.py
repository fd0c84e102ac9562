"""Runtime configuration for mageaudit - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from mageaudit.utils.logging import logger

CONFIG_DIR = ".mageaudit"
CONFIG_FILE = "config.json"

DEFAULTS = {
    "scan": {
        "excluded_dirs": [".git", ".svn", ".hg", ".idea", "node_modules", "Tests"],
        "excluded_files": [
            "LICENSE",
            "README.md",
            "CHANGELOG.md",
            "composer.json",
            "composer.lock",
            "package.json",
            "yarn.lock",
            "webpack.config.js",
            "gulpfile.js",
            "Gruntfile.js",
        ],
        "follow_symlinks": True,
    },
    "limits": {
        "max_workers": min(8, os.cpu_count() or 1),
        "max_file_size": 2 * 1024 * 1024,
    },
    "rules": {
        "block_ratio_threshold": 0.5,
        "data_crunch_threshold": 3,
        "sql_snippet_length": 80,
    },
}


def _coerce(raw: str, default_value: Any) -> Any:
    """Convert an environment string to the type of the default it overrides."""
    # bool before int: bool is an int subclass
    if isinstance(default_value, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if isinstance(default_value, int):
        return int(raw)
    if isinstance(default_value, float):
        return float(raw)
    if isinstance(default_value, list):
        return [v.strip() for v in raw.split(",") if v.strip()]
    return raw


def load_runtime_config(root: str | Path = ".") -> dict[str, Any]:
    """
    Load runtime configuration from .mageaudit/config.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (MAGEAUDIT_<SECTION>_<KEY>)
    2. .mageaudit/config.json file under root
    3. Built-in defaults

    Args:
        root: Root directory to look for config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / CONFIG_DIR / CONFIG_FILE
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key not in cfg[section]:
                                logger.warning(f"Unknown config key {section}.{key} in {path}")
                                continue
                            default_value = cfg[section][key]
                            if isinstance(default_value, float) and isinstance(value, int):
                                value = float(value)
                            if isinstance(value, type(default_value)):
                                cfg[section][key] = value
                            else:
                                logger.warning(
                                    f"Ignoring {section}.{key} in {path}: expected "
                                    f"{type(default_value).__name__}, got {type(value).__name__}"
                                )
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"MAGEAUDIT_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    cfg[section][key] = _coerce(value, cfg[section][key])
                except (ValueError, AttributeError) as e:
                    logger.warning(
                        f"Invalid value for environment variable {env_var}: '{value}' - {e}"
                    )
                    logger.info(f"Using default value: {cfg[section][key]}")

    return cfg
