"""
Command implementations.

Each command takes its collaborators (sources, devices, config path) as
arguments and returns a process exit code, so they run without a bridge.
"""

from __future__ import annotations

import json
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..bot import Bot
from ..compiler import build_source
from ..config import load_config, save_config
from ..errors import Cancelled, HueBotError
from ..events import IOLogger, NullLogger
from ..lights import DeviceMapper, Group, Light
from ..program import ProgramSource
from .helpers import Options, check as check_programs

# 128 + SIGINT, what shells report for Ctrl+C
EXIT_CANCELLED = 130


def ls(lights: list[Light], groups: list[Group], opts: Options) -> int:
    """List all lights and groups."""
    print("Lights", file=opts.stdout)
    for light in lights:
        print(f"  {light.id}: {light.name}", file=opts.stdout)
    print("Groups", file=opts.stdout)
    for group in groups:
        print(f"  {group.id}: {group.name}", file=opts.stdout)
    return 0


def run(
    sources: list[ProgramSource],
    lights: list[Light],
    groups: list[Group],
    opts: Options,
) -> int:
    """Compile, check and run programs, one after another."""
    try:
        device_mapper = DeviceMapper(lights, groups, opts.inputs)
        programs = [build_source(src) for src in sources]
        found_errors, _, missing_devices = check_programs(programs, device_mapper, opts.stderr)
        if found_errors or missing_devices:
            return 1

        logger = IOLogger(opts.stdout) if opts.debug else NullLogger()
        bot = Bot(device_mapper, logger=logger, waiter=opts.bot_waiter)
        with cancel_on_signal(bot):
            for program in programs:
                bot.execute(program)
        return 0
    except Cancelled:
        print("\n[SHUTDOWN] Cancelled", file=opts.stderr)
        return EXIT_CANCELLED
    except HueBotError as e:
        print(f"{type(e).__name__}: {e}", file=opts.stderr)
        return 1


def check(
    sources: list[ProgramSource],
    lights: list[Light],
    groups: list[Group],
    opts: Options,
) -> int:
    """Validate programs (and their devices, unless opts.no_device_check)."""
    try:
        device_mapper = None if opts.no_device_check else DeviceMapper(lights, groups, opts.inputs)
        programs = [build_source(src) for src in sources]
        found_errors, found_warnings, missing_devices = check_programs(
            programs, device_mapper, opts.stderr
        )
        return 1 if (found_errors or found_warnings or missing_devices) else 0
    except HueBotError as e:
        print(f"{type(e).__name__}: {e}", file=opts.stderr)
        return 1


def get_state(lights: list[Light], groups: list[Group], opts: Options) -> int:
    """Print the current state of every input device."""
    try:
        for device in DeviceMapper(lights, groups, opts.inputs):
            print(device.name, file=opts.stdout)
            print(f"  {json.dumps(device.get_state(), sort_keys=True)}", file=opts.stdout)
        return 0
    except HueBotError as e:
        print(f"{type(e).__name__}: {e}", file=opts.stderr)
        return 1


def set_ip(config_path: Path, ip: str, opts: Options) -> int:
    """Pin the bridge IP (useful on a VPN, where discovery fails)."""
    config = load_config(config_path)
    config.ip = ip
    save_config(config, config_path)
    return 0


def clear_ip(config_path: Path, opts: Options) -> int:
    config = load_config(config_path)
    config.ip = None
    save_config(config, config_path)
    return 0


def unregister(config_path: Path, opts: Options) -> int:
    """Forget the bridge and username."""
    config = load_config(config_path)
    config.ip = config.bridge_id = config.username = None
    save_config(config, config_path)
    return 0


@contextmanager
def cancel_on_signal(bot: Bot) -> Iterator[None]:
    """Cancel the bot on SIGINT/SIGTERM while the block runs."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def signal_handler(sig, frame):
        bot.cancel()

    previous = {sig: signal.signal(sig, signal_handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
