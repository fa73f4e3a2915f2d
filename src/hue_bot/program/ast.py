"""
Program abstract syntax tree.

A compiled program is a tree of Nodes. Each Node holds exactly one
instruction (Transition, SerialControl, ParallelControl or NO_OP) plus its
child nodes and the errors/warnings found while building that node.

Everything here is frozen, so two builds of the same document compare equal.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Iterator, Union


@dataclass(frozen=True)
class RandomRange:
    """A number drawn uniformly from [min, max] each time it's resolved."""
    min: float
    max: float


Number = Union[int, float, RandomRange]


def resolve_number(n: Number) -> float:
    """Resolve a fixed or random number to a concrete value."""
    if isinstance(n, RandomRange):
        return random.uniform(n.min, n.max)
    return n


def round_half_up(value: float) -> int:
    """Round half up (2.5 -> 3), not Python's round-half-even."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class Pause:
    """Optional delay before and/or after a unit of work (seconds)."""
    pre: Number | None = None
    post: Number | None = None


# Device references

@dataclass(frozen=True)
class LightRef:
    name: str


@dataclass(frozen=True)
class GroupRef:
    name: str


@dataclass(frozen=True)
class InputRef:
    """Positional device input: $1, $2, ... or $all."""
    ref: int | str

    ALL: ClassVar[str] = "all"

    def __str__(self) -> str:
        return f"${self.ref}"


DeviceRef = Union[LightRef, GroupRef, InputRef]


# Loops

@dataclass(frozen=True)
class InfiniteLoop:
    pause: Pause | None = None

    kind: ClassVar[str] = "infinite"


@dataclass(frozen=True)
class CountedLoop:
    n: int | RandomRange = 1
    pause: Pause | None = None

    kind: ClassVar[str] = "counted"


@dataclass(frozen=True)
class TimerLoop:
    hours: int = 0
    minutes: int = 0
    pause: Pause | None = None

    kind: ClassVar[str] = "timer"

    @property
    def seconds(self) -> int:
        return ((self.hours * 60) + self.minutes) * 60


@dataclass(frozen=True)
class DeadlineLoop:
    stop_time: datetime
    pause: Pause | None = None

    kind: ClassVar[str] = "deadline"


Loop = Union[InfiniteLoop, CountedLoop, TimerLoop, DeadlineLoop]


# Instructions

@dataclass(frozen=True)
class Transition:
    """Apply one state to a set of devices."""
    state: dict[str, Any]
    devices: tuple[DeviceRef, ...]
    wait: bool = True
    pause: Pause | None = None


@dataclass(frozen=True)
class SerialControl:
    """Run child nodes in order, in a loop."""
    loop: Loop = field(default_factory=CountedLoop)
    pause: Pause | None = None


@dataclass(frozen=True)
class ParallelControl:
    """Run child nodes concurrently, in a loop."""
    loop: Loop = field(default_factory=CountedLoop)
    pause: Pause | None = None


class _NoOp:
    """Placeholder instruction for a step that failed to compile."""

    def __repr__(self) -> str:
        return "NO_OP"


NO_OP = _NoOp()

Instruction = Union[Transition, SerialControl, ParallelControl, _NoOp]


@dataclass(frozen=True)
class Node:
    instruction: Instruction
    children: tuple["Node", ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    def walk(self) -> Iterator["Node"]:
        """Yield this node and all descendants, depth-first, in document order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class Program:
    """A compiled program: name, API version and AST root."""
    name: str | None
    api_version: float
    data: Node

    @property
    def errors(self) -> list[str]:
        return [e for node in self.data.walk() for e in node.errors]

    @property
    def warnings(self) -> list[str]:
        return [w for node in self.data.walk() for w in node.warnings]

    @property
    def valid(self) -> bool:
        return not self.errors

    def light_names(self) -> list[str]:
        """All light names hard-coded into the program."""
        return [ref.name for ref in self._devices(LightRef)]

    def group_names(self) -> list[str]:
        """All group names hard-coded into the program."""
        return [ref.name for ref in self._devices(GroupRef)]

    def device_refs(self) -> list[int | str]:
        """All positional inputs used in the program (e.g. 1, 2, "all")."""
        return [ref.ref for ref in self._devices(InputRef)]

    def _devices(self, ref_type: type) -> list:
        found: dict = {}
        for node in self.data.walk():
            if isinstance(node.instruction, Transition):
                for ref in node.instruction.devices:
                    if isinstance(ref, ref_type):
                        found.setdefault(ref, None)
        return list(found)
