"""Resolve light/group names, ids and positional inputs to devices."""

from typing import Iterable, Iterator

from ..errors import Unmapped
from .devices import Device, Group, GroupInput, Light, LightInput

ALL = "all"


def _as_id(val) -> int | None:
    if isinstance(val, int) and not isinstance(val, bool):
        return val
    if isinstance(val, str) and val.isdigit():
        return int(val)
    return None


class DeviceMapper:
    """
    Looks up devices by id or name.

    Inputs ($1, $2, ...) are the lights/groups passed on the command line,
    numbered from 1 in the order given. They're resolved up front, so an
    unknown input raises Unmapped when the mapper is created.
    """

    def __init__(
        self,
        lights: Iterable[Light] = (),
        groups: Iterable[Group] = (),
        inputs: Iterable[LightInput | GroupInput] = (),
    ):
        lights = list(lights)
        groups = list(groups)
        self._lights_by_id = {l.id: l for l in lights}
        self._lights_by_name = {l.name: l for l in lights}
        self._groups_by_id = {g.id: g for g in groups}
        self._groups_by_name = {g.name: g for g in groups}

        self._devices_by_input: dict[int, Device] = {}
        for idx, x in enumerate(inputs, start=1):
            if isinstance(x, LightInput):
                device = self._find(self._lights_by_id, self._lights_by_name, x.val)
                kind = "light"
            elif isinstance(x, GroupInput):
                device = self._find(self._groups_by_id, self._groups_by_name, x.val)
                kind = "group"
            else:
                raise TypeError(f"Invalid input: {x!r}")
            if device is None:
                raise Unmapped(f"Could not find {kind} with id or name '{x.val}'")
            self._devices_by_input[idx] = device

        self._all = list(self._devices_by_input.values())

    @staticmethod
    def _find(by_id: dict, by_name: dict, val) -> Device | None:
        device_id = _as_id(val)
        if device_id is not None and device_id in by_id:
            return by_id[device_id]
        return by_name.get(val)

    def __iter__(self) -> Iterator[Device]:
        """Iterate over all input devices."""
        return iter(self._all)

    def light(self, id_or_name) -> Light:
        device = self._find(self._lights_by_id, self._lights_by_name, id_or_name)
        if device is None:
            raise Unmapped(f"Unmapped light '{id_or_name}'")
        return device

    def group(self, id_or_name) -> Group:
        device = self._find(self._groups_by_id, self._groups_by_name, id_or_name)
        if device is None:
            raise Unmapped(f"Unmapped group '{id_or_name}'")
        return device

    def input(self, ref: int | str) -> list[Device]:
        """Resolve a positional input ($N) or "all" to its device(s)."""
        if ref == ALL:
            return list(self._all)
        if ref not in self._devices_by_input:
            raise Unmapped(f"Unmapped device '${ref}'")
        return [self._devices_by_input[ref]]

    def missing_lights(self, names: Iterable[str]) -> list[str]:
        return [n for n in names if self._find(self._lights_by_id, self._lights_by_name, n) is None]

    def missing_groups(self, names: Iterable[str]) -> list[str]:
        return [n for n in names if self._find(self._groups_by_id, self._groups_by_name, n) is None]

    def missing_inputs(self, refs: Iterable[int | str]) -> list[int | str]:
        missing = [r for r in refs if r not in self._devices_by_input]
        if self._all:
            missing = [r for r in missing if r != ALL]
        return missing
