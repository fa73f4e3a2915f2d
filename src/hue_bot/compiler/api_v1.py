"""
Compiler for API version 1.x programs.

A program is a tree of steps. Each step is an object with exactly one of:

    transition: {state, devices, pause, wait}
    serial:     {steps, loop, devices, pause}
    parallel:   {steps, loop, devices, pause}

Minor versions add fields:
- 1.0: pause is a number of seconds (after the step)
- 1.1: transition.wait; pause may be {before, after}
- 1.2: pause before/after and loop counts may be {random: {min, max}}

Problems in the document never raise. They are collected as strings on the
node where they were found, and a broken step compiles to NO_OP.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from ..program.ast import (
    NO_OP,
    CountedLoop,
    DeadlineLoop,
    GroupRef,
    InfiniteLoop,
    InputRef,
    LightRef,
    Loop,
    Node,
    ParallelControl,
    Pause,
    Program,
    RandomRange,
    SerialControl,
    TimerLoop,
    Transition,
    round_half_up as _round,
)

DEVICE_REF = re.compile(r"\$([1-9][0-9]*)")
PERCENT = re.compile(r"(\d{1,3})%")

MIN_KELVIN = 2000
MAX_KELVIN = 6530
MAX_BRI = 254

STEP_TYPES = ("transition", "serial", "parallel")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _keys(d: dict) -> str:
    return ", ".join(str(k) for k in d)


class ApiV1:
    """Builds Programs from 1.x documents."""

    def __init__(self, api_version: float = 1.0):
        self.api_version = api_version

    def build(self, tokens: dict[str, Any], default_name: str | None = None) -> Program:
        tokens = dict(tokens)
        name = tokens.pop("name", None) or default_name
        tokens.pop("version", None)
        return Program(
            name=name,
            api_version=self.api_version,
            data=self._node(tokens, None),
        )

    def _since(self, version: float) -> bool:
        return self.api_version >= version

    # Steps

    def _node(self, t: Any, inherited_devices: tuple | None) -> Node:
        errors: list[str] = []
        warnings: list[str] = []

        if not isinstance(t, dict):
            errors.append("Each step must be an object")
            return Node(NO_OP, errors=tuple(errors))

        present = [k for k in STEP_TYPES if k in t]
        unknown = {k: None for k in t if k not in STEP_TYPES}
        if unknown:
            errors.append(f"Unknown keys in step: {_keys(unknown)}")

        instruction = NO_OP
        children: list[Node] = []
        if not present:
            errors.append("Expected one of 'transition', 'serial', or 'parallel'")
        elif len(present) > 1:
            errors.append("Only one of 'transition', 'serial', or 'parallel' may be used in a step")
        elif present[0] == "transition":
            instruction = self._transition(t["transition"], inherited_devices, errors, warnings)
        else:
            instruction, children = self._control(
                present[0], t[present[0]], inherited_devices, errors, warnings
            )

        return Node(instruction, tuple(children), tuple(errors), tuple(warnings))

    def _transition(
        self,
        t: Any,
        inherited_devices: tuple | None,
        errors: list[str],
        warnings: list[str],
    ) -> Transition:
        if not isinstance(t, dict):
            errors.append("'transition' must be an object")
            t = {}
        t = dict(t)

        state = t.pop("state", None)
        devices = t.pop("devices", None)
        pause = t.pop("pause", None)
        wait = t.pop("wait", True) if self._since(1.1) else True

        if state is None:
            errors.append("'state' is required in a transition")
            state = {}
        elif not isinstance(state, dict):
            errors.append("'transition.state' must be an object")
            state = {}

        if t:
            errors.append(f"Unknown keys in 'transition': {_keys(t)}")

        if devices is not None:
            refs = self._devices(devices, errors)
        elif inherited_devices is not None:
            refs = inherited_devices
        else:
            errors.append("A transition requires devices")
            refs = ()

        if not isinstance(wait, bool):
            errors.append("'transition.wait' must be true or false")
            wait = True

        return Transition(
            state=self._state(state, errors),
            devices=refs,
            wait=wait,
            pause=self._pause(pause, "transition.pause", errors) if pause is not None else None,
        )

    def _control(
        self,
        kind: str,
        t: Any,
        inherited_devices: tuple | None,
        errors: list[str],
        warnings: list[str],
    ) -> tuple[SerialControl | ParallelControl, list[Node]]:
        if not isinstance(t, dict):
            errors.append(f"'{kind}' must be an object")
            t = {}
        t = dict(t)

        steps = t.pop("steps", None)
        lp = t.pop("loop", None)
        devices = t.pop("devices", None)
        pause = t.pop("pause", None)

        if t:
            errors.append(f"Unknown keys in '{kind}': {_keys(t)}")

        if not isinstance(steps, list):
            errors.append(f"'{kind}.steps' must be an array")
            steps = []
        elif not steps:
            warnings.append(f"'{kind}.steps' is empty")

        if devices is not None:
            inherited_devices = self._devices(devices, errors)

        loop = self._loop(lp, f"{kind}.loop", errors, warnings) if lp is not None else CountedLoop(1)
        pause = self._pause(pause, f"{kind}.pause", errors) if pause is not None else None

        control_class = SerialControl if kind == "serial" else ParallelControl
        children = [self._node(step, inherited_devices) for step in steps]
        return control_class(loop=loop, pause=pause), children

    # Fields

    def _state(self, state: dict, errors: list[str]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in state.items():
            # YAML 1.1 reads an unquoted "on:" key as the boolean True
            if key is True:
                key = "on"

            if key == "time":
                if _is_number(value) and value >= 0:
                    result["transitiontime"] = _round(value * 10)
                else:
                    errors.append("'transition.state.time' must be a number")
            elif key == "ctk":
                if _is_int(value) and MIN_KELVIN <= value <= MAX_KELVIN:
                    result["ct"] = _round(1_000_000 / value)
                else:
                    errors.append(
                        f"'transition.state.ctk' must be an integer between {MIN_KELVIN} and {MAX_KELVIN}"
                    )
            elif key == "bri":
                bri = self._brightness(value)
                if bri is None:
                    errors.append(
                        "'transition.state.bri' must be an integer or a percent between 0% and 100%"
                    )
                else:
                    result["bri"] = bri
            else:
                result[key] = value
        return result

    def _brightness(self, value: Any) -> int | None:
        if _is_int(value):
            return value if 0 <= value <= MAX_BRI else None
        if isinstance(value, str):
            match = PERCENT.fullmatch(value.strip())
            if match and int(match.group(1)) <= 100:
                return _round(MAX_BRI * int(match.group(1)) / 100)
        return None

    def _devices(self, t: Any, errors: list[str]) -> tuple:
        if not isinstance(t, dict):
            errors.append("'devices' must be an object")
            return ()
        t = dict(t)

        inputs = t.pop("inputs", None)
        lights = t.pop("lights", None)
        groups = t.pop("groups", None)
        if t:
            errors.append(f"Unknown keys in 'devices': {_keys(t)}")

        refs: list = []
        if inputs == "$all":
            refs.append(InputRef(InputRef.ALL))
        elif isinstance(inputs, list):
            matches = [DEVICE_REF.fullmatch(x) if isinstance(x, str) else None for x in inputs]
            if all(matches):
                refs.extend(InputRef(int(m.group(1))) for m in matches)
            else:
                errors.append(
                    "If 'devices.inputs' is an array, it must be an array of input variables (e.g. [$1, $2, ...])"
                )
        elif inputs is not None:
            errors.append("'devices.inputs' must be '$all' or an array of input variables (e.g. [$1, $2, ...])")

        for key, names, ref_class in (("lights", lights, LightRef), ("groups", groups, GroupRef)):
            if names is None:
                continue
            if isinstance(names, list) and all(isinstance(n, str) for n in names):
                refs.extend(ref_class(n) for n in names)
            else:
                errors.append(f"'devices.{key}' must be an array of strings")

        return tuple(refs)

    def _pause(self, value: Any, path: str, errors: list[str]) -> Pause | None:
        if _is_number(value):
            if value < 0:
                errors.append(f"'{path}' must not be negative")
                return None
            return Pause(post=value)

        if isinstance(value, dict) and self._since(1.1):
            value = dict(value)
            before = value.pop("before", None)
            after = value.pop("after", None)
            if value:
                errors.append(f"Unknown keys in '{path}': {_keys(value)}")
            return Pause(
                pre=self._pause_time(before, f"{path}.before", errors) if before is not None else None,
                post=self._pause_time(after, f"{path}.after", errors) if after is not None else None,
            )

        if self._since(1.1):
            errors.append(f"'{path}' must be a number or an object with 'before' and/or 'after'")
        else:
            errors.append(f"'{path}' must be a number")
        return None

    def _pause_time(self, value: Any, path: str, errors: list[str]):
        if _is_number(value) and value >= 0:
            return value
        if self._since(1.2) and isinstance(value, dict) and list(value) == ["random"]:
            return self._random(value["random"], f"{path}.random", errors, integer=False)

        if self._since(1.2):
            errors.append(f"'{path}' must be a number of seconds or an object with 'random'")
        else:
            errors.append(f"'{path}' must be a number of seconds")
        return None

    def _random(self, value: Any, path: str, errors: list[str], integer: bool) -> RandomRange | None:
        if not isinstance(value, dict) or set(value) != {"min", "max"}:
            errors.append(f"'{path}' must be an object with 'min' and 'max'")
            return None

        lo, hi = value["min"], value["max"]
        valid = _is_int if integer else _is_number
        if not (valid(lo) and valid(hi)) or lo < 0 or hi < lo:
            kind = "integers" if integer else "numbers"
            errors.append(f"'{path}.min' and '{path}.max' must be {kind} where 0 <= min <= max")
            return None
        return RandomRange(lo, hi)

    # Loops

    def _loop(self, value: Any, path: str, errors: list[str], warnings: list[str]) -> Loop:
        if not isinstance(value, dict):
            errors.append(f"'{path}' must be an object")
            return CountedLoop(1)
        value = dict(value)

        pause_value = value.pop("pause", None)
        pause = self._pause(pause_value, f"{path}.pause", errors) if pause_value is not None else None

        loop_types = ["infinite", "count", "timer", "until"]
        if self._since(1.2):
            loop_types.insert(2, "random")

        present = [k for k in loop_types if k in value]
        unknown = {k: None for k in value if k not in loop_types}
        if unknown:
            errors.append(f"Unknown keys in '{path}': {_keys(unknown)}")
        if len(present) != 1:
            quoted = ", ".join(f"'{k}'" for k in loop_types)
            errors.append(f"'{path}' must contain exactly one of {quoted}")
            return CountedLoop(1, pause)

        kind = present[0]
        val = value[kind]
        if kind == "infinite":
            if not isinstance(val, bool):
                errors.append(f"'{path}.infinite' must be true or false")
                return CountedLoop(1, pause)
            return InfiniteLoop(pause) if val else CountedLoop(1, pause)
        elif kind == "count":
            if not _is_int(val) or val < 0:
                errors.append(f"'{path}.count' must be a positive integer")
                return CountedLoop(1, pause)
            return CountedLoop(val, pause)
        elif kind == "random":
            n = self._random(val, f"{path}.random", errors, integer=True)
            return CountedLoop(n if n is not None else 1, pause)
        elif kind == "timer":
            return self._timer(val, f"{path}.timer", pause, errors)
        else:
            return self._deadline(val, f"{path}.until", pause, errors, warnings)

    def _timer(self, value: Any, path: str, pause: Pause | None, errors: list[str]) -> Loop:
        if not isinstance(value, dict):
            errors.append(f"'{path}' must be an object with 'hours' and/or 'minutes'")
            return CountedLoop(1, pause)
        value = dict(value)

        hours = value.pop("hours", None)
        minutes = value.pop("minutes", None)
        if value:
            errors.append(f"Unknown keys in '{path}': {_keys(value)}")
        if hours is None and minutes is None:
            errors.append(f"'{path}' must contain 'hours' and/or 'minutes'")
            return CountedLoop(1, pause)

        ok = True
        for key, val in (("hours", hours), ("minutes", minutes)):
            if val is not None and (not _is_int(val) or val < 0):
                errors.append(f"'{path}.{key}' must be a positive integer")
                ok = False
        if not ok:
            return CountedLoop(1, pause)
        return TimerLoop(hours or 0, minutes or 0, pause)

    def _deadline(
        self,
        value: Any,
        path: str,
        pause: Pause | None,
        errors: list[str],
        warnings: list[str],
    ) -> Loop:
        if not isinstance(value, dict):
            errors.append(f"'{path}' must be an object with 'date' and/or 'time'")
            return CountedLoop(1, pause)
        value = dict(value)

        now = datetime.now()
        date_val = value.pop("date", now.strftime("%Y-%m-%d"))
        time_val = value.pop("time", now.strftime("%H:%M"))
        if value:
            errors.append(f"Unknown keys in '{path}': {_keys(value)}")

        # YAML turns an unquoted 2023-12-17 into a date, and 17:05 into the
        # base-60 integer 1025
        if isinstance(date_val, date):
            date_val = date_val.isoformat()
        if _is_int(time_val):
            time_val = f"{time_val // 60:02d}:{time_val % 60:02d}"

        try:
            stop_time = datetime.strptime(f"{date_val} {time_val}", "%Y-%m-%d %H:%M")
        except ValueError:
            errors.append(f"'{path}' must have a date like 'YYYY-MM-DD' and a time like 'HH:MM'")
            return CountedLoop(1, pause)

        if stop_time <= now:
            warnings.append(f"'{path}' is in the past, so this loop will never run")
        return DeadlineLoop(stop_time, pause)
