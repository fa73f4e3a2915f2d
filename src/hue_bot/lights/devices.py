"""Hue lights and groups."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .client import HueClient


@dataclass(frozen=True)
class LightInput:
    """A light given on the command line (id or name)."""
    val: str


@dataclass(frozen=True)
class GroupInput:
    """A group given on the command line (id or name)."""
    val: str


@dataclass(eq=False)
class Device:
    """A light or group on the bridge."""
    client: "HueClient"
    id: int
    name: str
    attrs: dict[str, Any] = field(default_factory=dict)

    # v1 API resource name and the key holding settable state
    resource = ""
    state_key = "state"

    def set_state(self, state: dict[str, Any]) -> Any:
        return self.client.put(self._url(self._state_path), state)

    def get_state(self) -> dict[str, Any]:
        return self.client.get(self._url("")).get(self.state_key, {})

    @property
    def _state_path(self) -> str:
        return "/state"

    def _url(self, path: str) -> str:
        return f"/{self.resource}/{self.id}{path}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id}, {self.name!r})"


class Light(Device):
    resource = "lights"


class Group(Device):
    resource = "groups"
    state_key = "action"

    @property
    def _state_path(self) -> str:
        return "/action"
