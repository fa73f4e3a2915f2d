"""Hue devices, device lookup and the bridge client."""

from .devices import Device, Light, Group, LightInput, GroupInput
from .device_mapper import DeviceMapper
from .client import HueClient, Bridge
from .discovery import BridgeInfo, discover_bridges

__all__ = [
    "Device",
    "Light",
    "Group",
    "LightInput",
    "GroupInput",
    "DeviceMapper",
    "HueClient",
    "Bridge",
    "BridgeInfo",
    "discover_bridges",
]
