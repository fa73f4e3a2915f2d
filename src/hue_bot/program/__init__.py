"""Compiled program model and source loading."""

from .ast import (
    Program,
    Node,
    Transition,
    SerialControl,
    ParallelControl,
    NO_OP,
    LightRef,
    GroupRef,
    InputRef,
    InfiniteLoop,
    CountedLoop,
    TimerLoop,
    DeadlineLoop,
    Pause,
    RandomRange,
    resolve_number,
)
from .source import ProgramSource, load_source, read_source

__all__ = [
    "Program",
    "Node",
    "Transition",
    "SerialControl",
    "ParallelControl",
    "NO_OP",
    "LightRef",
    "GroupRef",
    "InputRef",
    "InfiniteLoop",
    "CountedLoop",
    "TimerLoop",
    "DeadlineLoop",
    "Pause",
    "RandomRange",
    "resolve_number",
    "ProgramSource",
    "load_source",
    "read_source",
]
