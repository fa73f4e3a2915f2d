"""
Program runtime.

The Bot walks a compiled Program and drives the devices:

- Transition: set the state on every device at once (one thread each), then
  wait for the devices' own transition time
- Serial: run child nodes in order, in a loop
- Parallel: run child nodes at once (one thread each), in a loop

Every task a node starts is joined before that node finishes. If a task
fails, its siblings stop at their next pause and the error is re-raised.

Usage:
    bot = Bot(device_mapper, logger=IOLogger(sys.stdout))
    bot.execute(program)

    # From a signal handler or another thread:
    bot.cancel()
"""

from __future__ import annotations

import threading
import time
from concurrent import futures
from typing import Any, Callable, Iterable

from .errors import BotError, Cancelled, Unmapped
from .events import NullLogger
from .lights.device_mapper import DeviceMapper
from .lights.devices import Device
from .program.ast import (
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
    SerialControl,
    TimerLoop,
    Transition,
    resolve_number,
    round_half_up,
)

# Bridge default transition time, in 1/10 s
DEFAULT_TRANSITION_TIME = 4

Waiter = Callable[[float], Any]


class _Halted(Exception):
    """Raised in tasks that are stopped because a sibling task failed."""


def _error_rank(e: BaseException) -> int:
    if isinstance(e, _Halted):
        return 2
    if isinstance(e, Cancelled):
        return 1
    return 0


class Bot:
    """Executes Programs."""

    def __init__(
        self,
        device_mapper: DeviceMapper,
        logger=None,
        waiter: Waiter | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            device_mapper: Resolves the program's device references
            logger: Receives run events (default: NullLogger)
            waiter: Sleeps for the given seconds (default: real sleep that
                wakes up on cancel)
            clock: Wall-clock time in seconds, for timer and deadline loops
        """
        self.device_mapper = device_mapper
        self.logger = logger or NullLogger()
        self.clock = clock
        self._waiter = waiter or self._sleep

        # Set by cancel(), and only cleared by a new Bot
        self._cancelled = threading.Event()
        # Set on cancel, or for the rest of a run when a task fails
        self._halted = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop the current (and any future) run as soon as possible."""
        self._cancelled.set()
        self._halted.set()

    def execute(self, program: Program) -> None:
        """
        Run a program to completion.

        The program must be valid and its devices resolvable; that's checked
        by the caller.

        Raises:
            Cancelled: If cancel() was called. No stop event is logged.
            BotError: If a device reference can't be resolved
        """
        if not self._cancelled.is_set():
            self._halted.clear()
        self._check()

        self.logger.log("start", {"program": program.name})
        self._exec(program.data)
        self.logger.log("stop", {"program": program.name})

    def _exec(self, node: Node) -> None:
        i = node.instruction
        if isinstance(i, Transition):
            self._transition(i)
        elif isinstance(i, SerialControl):
            self._serial(node.children, i)
        elif isinstance(i, ParallelControl):
            self._parallel(node.children, i)
        else:
            raise BotError(f"Unexpected instruction {i!r}")

    def _transition(self, t: Transition) -> None:
        devices = self._map_devices(t.devices)
        self.logger.log("transition", {"devices": [d.name for d in devices]})
        self._pause_before(t.pause)

        seconds = t.state.get("transitiontime", DEFAULT_TRANSITION_TIME) / 10

        def set_state(device: Device) -> None:
            self._check()
            result = device.set_state(t.state)
            self.logger.log("set_state", {"device": device.name, "state": t.state, "result": result})
            if t.wait:
                self._wait(seconds)

        self._fan_out(set_state, devices)
        self._pause_after(t.pause)

    def _serial(self, nodes: Iterable[Node], control: SerialControl) -> None:
        def iteration() -> None:
            self.logger.log("serial", {"loop": control.loop.kind})
            for node in nodes:
                self._exec(node)

        self._pause_before(control.pause)
        self._control_loop(control.loop, iteration)
        self._pause_after(control.pause)

    def _parallel(self, nodes: Iterable[Node], control: ParallelControl) -> None:
        def iteration() -> None:
            self.logger.log("parallel", {"loop": control.loop.kind})
            self._fan_out(self._exec, nodes)

        self._pause_before(control.pause)
        self._control_loop(control.loop, iteration)
        self._pause_after(control.pause)

    def _control_loop(self, loop: Loop, iteration: Callable[[], None]) -> None:
        def run_once() -> None:
            self._check()
            self._pause_before(loop.pause)
            iteration()
            self._pause_after(loop.pause)

        if isinstance(loop, InfiniteLoop):
            while True:
                run_once()
        elif isinstance(loop, CountedLoop):
            # Random counts are drawn once per loop, not per iteration
            for _ in range(round_half_up(resolve_number(loop.n))):
                run_once()
        elif isinstance(loop, TimerLoop):
            # Measures time spent in each iteration, so may overshoot by
            # up to one iteration
            elapsed = 0
            while elapsed < loop.seconds:
                start = self.clock()
                run_once()
                elapsed += round_half_up(self.clock() - start)
        elif isinstance(loop, DeadlineLoop):
            stop = loop.stop_time.timestamp()
            while self.clock() < stop:
                run_once()
        else:
            raise BotError(f"Unexpected loop {loop!r}")

    def _map_devices(self, refs: Iterable) -> list[Device]:
        devices: list[Device] = []
        try:
            for ref in refs:
                if isinstance(ref, LightRef):
                    devices.append(self.device_mapper.light(ref.name))
                elif isinstance(ref, GroupRef):
                    devices.append(self.device_mapper.group(ref.name))
                elif isinstance(ref, InputRef):
                    devices.extend(self.device_mapper.input(ref.ref))
                else:
                    raise BotError(f"Unknown device reference {ref!r}")
        except Unmapped as e:
            raise BotError(str(e)) from e
        return devices

    def _fan_out(self, fn: Callable[[Any], None], items: Iterable) -> None:
        """Run fn on each item in its own thread and wait for all of them."""
        items = list(items)
        if not items:
            return

        with futures.ThreadPoolExecutor(max_workers=len(items)) as pool:
            tasks = [pool.submit(fn, item) for item in items]
            done, _ = futures.wait(tasks, return_when=futures.FIRST_EXCEPTION)
            if any(task.exception() is not None for task in done):
                self._halted.set()

        errors = [task.exception() for task in tasks if task.exception() is not None]
        if errors:
            raise min(errors, key=_error_rank)

    def _pause_before(self, pause: Pause | None) -> None:
        if pause is not None and pause.pre is not None:
            self._wait(resolve_number(pause.pre))

    def _pause_after(self, pause: Pause | None) -> None:
        if pause is not None and pause.post is not None:
            self._wait(resolve_number(pause.post))

    def _wait(self, seconds: float) -> None:
        self.logger.log("pause", {"time": seconds})
        self._waiter(seconds)
        self._check()

    def _sleep(self, seconds: float) -> None:
        self._halted.wait(seconds)

    def _check(self) -> None:
        if self._cancelled.is_set():
            raise Cancelled()
        if self._halted.is_set():
            raise _Halted()
