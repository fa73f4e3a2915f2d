"""Hue bridge REST client (v1 API)."""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Any

import requests
import urllib3

from ..config import BridgeConfig, save_config
from ..errors import ClientError
from .devices import Group, Light
from .discovery import discover_bridges

# Suppress SSL warnings for Hue bridge (uses self-signed cert)
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

# Bridge error type for "link button not pressed"
LINK_BUTTON_NOT_PRESSED = 101


class HueClient:
    """
    Talks to a Hue bridge.

    Usage:
        client = HueClient(load_config(path), path)
        error = client.connect()
        if error is None:
            lights = Bridge(client).lights()
    """

    def __init__(
        self,
        config: BridgeConfig,
        config_path: Path | None = None,
        timeout: float = 5,
    ):
        self.config = config
        self.config_path = config_path
        self.timeout = timeout
        self.ip: str | None = config.ip
        self.username: str | None = None

    def connect(self, register_timeout: int = 30) -> str | None:
        """
        Find the bridge and make sure we have a valid username.

        Returns an error message, or None on success.
        """
        if self.config.ip:
            self.ip = self.config.ip
        else:
            bridges = discover_bridges()
            if self.config.bridge_id:
                match = next((b for b in bridges if b.id == self.config.bridge_id), None)
                if match is None:
                    return f"Unable to find Hue Bridge '{self.config.bridge_id}' on your network"
                self.ip = match.ip
            elif bridges:
                self.config.bridge_id = bridges[0].id
                self.ip = bridges[0].ip
                self._save()
            else:
                return "Unable to find a Hue Bridge on your network"

        if self.config.username:
            try:
                self._get_as(self.config.username, "")
            except ClientError:
                return f"Invalid Hue Bridge username '{self.config.username}'"
            self.username = self.config.username
        else:
            try:
                self.username = self.register(timeout=register_timeout)
            except (ClientError, TimeoutError) as e:
                return str(e)
            self.config.username = self.username
            self._save()
        return None

    def register(self, app_name: str = "hue_bot", timeout: int = 30) -> str:
        """
        Register a new username with the bridge.

        User must press the bridge button within timeout seconds.

        Raises:
            TimeoutError: If button not pressed in time
            ClientError: If the bridge rejects the request
        """
        print("[BRIDGE] Please press the button on your Hue bridge...", file=sys.stderr)
        print(f"[BRIDGE] Waiting up to {timeout} seconds...", file=sys.stderr)

        start_time = time.time()
        while time.time() - start_time < timeout:
            result = self._request("POST", self._url(None, ""), {"devicetype": f"{app_name}#cli"}, check=False)
            if isinstance(result, list) and result:
                if "success" in result[0]:
                    return result[0]["success"]["username"]
                error = result[0].get("error", {})
                if error.get("type") != LINK_BUTTON_NOT_PRESSED:
                    raise ClientError(f"Registration failed: {error.get('description')}")
            time.sleep(1)

        raise TimeoutError("Bridge button was not pressed in time")

    def get(self, path: str) -> Any:
        return self._request("GET", self._url(self.username, path))

    def put(self, path: str, body: dict[str, Any]) -> Any:
        return self._request("PUT", self._url(self.username, path), body)

    def post(self, path: str, body: dict[str, Any]) -> Any:
        return self._request("POST", self._url(self.username, path), body)

    def _get_as(self, username: str, path: str) -> Any:
        return self._request("GET", self._url(username, path))

    def _url(self, username: str | None, path: str) -> str:
        url = f"https://{self.ip}/api"
        if username:
            url += f"/{username}"
        return url + path

    def _request(
        self,
        method: str,
        url: str,
        body: dict[str, Any] | None = None,
        check: bool = True,
    ) -> Any:
        try:
            # Hue bridge uses self-signed cert
            response = requests.request(method, url, json=body, verify=False, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ClientError(f"Could not reach Hue Bridge at {self.ip}: {e}") from e

        if response.status_code not in (200, 201):
            raise ClientError(
                f"Unexpected response from Bridge ({response.status_code}): {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ClientError(f"Invalid JSON from Bridge: {e}") from e
        if check and isinstance(data, list) and data and "error" in data[0]:
            raise ClientError(data[0]["error"].get("description", "Unknown bridge error"))
        return data

    def _save(self) -> None:
        if self.config_path is not None:
            save_config(self.config, self.config_path)


class Bridge:
    """Lights and groups on a connected bridge."""

    def __init__(self, client: HueClient):
        self.client = client

    def lights(self) -> list[Light]:
        return [
            Light(self.client, int(light_id), attrs.get("name", ""), attrs)
            for light_id, attrs in self.client.get("/lights").items()
        ]

    def groups(self) -> list[Group]:
        return [
            Group(self.client, int(group_id), attrs.get("name", ""), attrs)
            for group_id, attrs in self.client.get("/groups").items()
        ]
