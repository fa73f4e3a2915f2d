"""Shared helpers for the command line."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, TextIO

import yaml

from ..lights import DeviceMapper, GroupInput, LightInput
from ..program import Program, ProgramSource, load_source, read_source


@dataclass
class Options:
    """Command line options plus the streams and waiter commands should use."""
    inputs: list[LightInput | GroupInput] = field(default_factory=list)
    read_stdin: bool = False
    debug: bool = False
    no_device_check: bool = False
    stdin: TextIO = field(default_factory=lambda: sys.stdin)
    stdout: TextIO = field(default_factory=lambda: sys.stdout)
    stderr: TextIO = field(default_factory=lambda: sys.stderr)
    bot_waiter: Optional[Callable[[float], None]] = None


def get_sources(files: list[str], opts: Options) -> list[ProgramSource]:
    """
    Load program files, plus STDIN if asked for with -i or "-".

    Raises:
        FileNotFoundError: If any file is missing
        ValueError: If a program isn't a YAML/JSON object
    """
    paths = [f for f in files if f != "-"]
    read_stdin = opts.read_stdin or "-" in files

    bad_paths = [p for p in paths if not Path(p).exists()]
    if bad_paths:
        raise FileNotFoundError(f"Cannot find {', '.join(bad_paths)}")

    try:
        sources = [load_source(Path(p)) for p in paths]
        if read_stdin:
            sources.append(read_source(opts.stdin.read(), "STDIN"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML: {e}") from e
    return sources


def check(
    programs: list[Program],
    device_mapper: DeviceMapper | None,
    io: TextIO,
    quiet: bool = False,
) -> tuple[bool, bool, bool]:
    """
    Print any program errors, warnings and unknown devices.

    Device checks are skipped when device_mapper is None.

    Returns:
        (found_errors, found_warnings, found_missing_devices)
    """
    invalid = [p for p in programs if p.errors]
    if invalid and not quiet:
        print_messages(io, "Errors", [f"{p.name}: {e}" for p in invalid for e in p.errors])

    imperfect = [p for p in programs if p.warnings]
    if imperfect and not quiet:
        print_messages(io, "Warnings", [f"{p.name}: {w}" for p in imperfect for w in p.warnings])

    if device_mapper is None:
        return bool(invalid), bool(imperfect), False

    missing_lights = device_mapper.missing_lights(_unique(n for p in programs for n in p.light_names()))
    if missing_lights and not quiet:
        print_messages(io, "Unknown lights", missing_lights)

    missing_groups = device_mapper.missing_groups(_unique(n for p in programs for n in p.group_names()))
    if missing_groups and not quiet:
        print_messages(io, "Unknown groups", missing_groups)

    missing_inputs = device_mapper.missing_inputs(_unique(r for p in programs for r in p.device_refs()))
    if missing_inputs and not quiet:
        print_messages(io, "Unknown device inputs", [f"${r}" for r in missing_inputs])

    missing = bool(missing_lights or missing_groups or missing_inputs)
    return bool(invalid), bool(imperfect), missing


def print_messages(io: TextIO, label: str, messages: list[str]) -> None:
    """Print a numbered list of messages under a label."""
    print(f"{label}:", file=io)
    for i, msg in enumerate(messages, start=1):
        print(f"  {i}) {msg}", file=io)


def _unique(items) -> list:
    return list(dict.fromkeys(items))
