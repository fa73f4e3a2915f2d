"""Configuration schema and loading."""

from .schema import BridgeConfig
from .loader import default_config_path, load_config, save_config

__all__ = [
    "BridgeConfig",
    "default_config_path",
    "load_config",
    "save_config",
]
