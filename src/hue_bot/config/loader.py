"""Configuration file loading and saving."""

import os
from pathlib import Path
from typing import Any

import yaml

from .schema import BridgeConfig

DEFAULT_CONFIG_PATH = Path("~/.config/hue-bot/config.yaml")


def default_config_path() -> Path:
    """Config path from $HUE_BOT_CONFIG, else ~/.config/hue-bot/config.yaml."""
    return Path(os.environ.get("HUE_BOT_CONFIG", DEFAULT_CONFIG_PATH)).expanduser()


def load_config(config_path: Path) -> BridgeConfig:
    """Load configuration from YAML file. A missing file gives the defaults."""
    if not config_path.exists():
        return BridgeConfig()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return BridgeConfig(
        ip=data.get("ip"),
        bridge_id=data.get("id"),
        username=data.get("username"),
    )


def save_config(config: BridgeConfig, config_path: Path) -> None:
    """Save configuration to YAML file. Unset values are left out."""
    data: dict[str, Any] = {
        "ip": config.ip,
        "id": config.bridge_id,
        "username": config.username,
    }
    data = {k: v for k, v in data.items() if v is not None}

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
