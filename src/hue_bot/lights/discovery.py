"""Hue bridge discovery."""

import socket
import sys
import time
from dataclasses import dataclass

import requests
from zeroconf import ServiceBrowser, ServiceListener, Zeroconf

DISCOVERY_URL = "https://discovery.meethue.com/"
MDNS_SERVICE = "_hue._tcp.local."


@dataclass
class BridgeInfo:
    """A bridge found on the network."""
    id: str
    ip: str


class _HueListener(ServiceListener):
    def __init__(self):
        self.bridges: list[BridgeInfo] = []

    def add_service(self, zc, type_, name):
        info = zc.get_service_info(type_, name)
        if info and info.addresses:
            ip = socket.inet_ntoa(info.addresses[0])
            bridge_id = name.split(".")[0].replace("Philips Hue - ", "")
            self.bridges.append(BridgeInfo(id=bridge_id, ip=ip))

    def remove_service(self, zc, type_, name):
        pass

    def update_service(self, zc, type_, name):
        pass


def discover_mdns(wait: float = 3.0) -> list[BridgeInfo]:
    """Browse for bridges with mDNS."""
    zc = Zeroconf()
    try:
        listener = _HueListener()
        ServiceBrowser(zc, MDNS_SERVICE, listener)
        time.sleep(wait)
        return listener.bridges
    finally:
        zc.close()


def discover_cloud(url: str = DISCOVERY_URL, timeout: float = 5) -> list[BridgeInfo]:
    """Ask the meethue.com discovery endpoint for bridges on this network."""
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return [
        BridgeInfo(id=b.get("id", "unknown"), ip=b.get("internalipaddress", ""))
        for b in response.json()
    ]


def discover_bridges() -> list[BridgeInfo]:
    """
    Discover Hue bridges on the network.

    Tries mDNS first, then falls back to the cloud discovery API.
    """
    bridges: list[BridgeInfo] = []
    try:
        bridges = discover_mdns()
    except OSError as e:
        print(f"[BRIDGE] mDNS discovery failed: {e}", file=sys.stderr)

    if not bridges:
        try:
            bridges = discover_cloud()
        except (requests.RequestException, ValueError) as e:
            print(f"[BRIDGE] Cloud discovery failed: {e}", file=sys.stderr)

    return bridges
