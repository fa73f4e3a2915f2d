"""Configuration dataclasses."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class BridgeConfig:
    """Hue bridge connection settings."""
    ip: Optional[str] = None  # Set manually (e.g. on a VPN), else discovered
    bridge_id: Optional[str] = None  # Bridge picked during discovery
    username: Optional[str] = None  # Registered with the bridge's link button
