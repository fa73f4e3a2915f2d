"""Shared pytest fixtures for hue-bot tests."""

from __future__ import annotations

import threading

import pytest

from hue_bot.errors import ClientError
from hue_bot.events import CollectingLogger
from hue_bot.lights import DeviceMapper, Group, GroupInput, Light, LightInput

# ============================================================================
# Fake bridge
# ============================================================================


class FakeClient:
    """Records PUTs instead of talking to a bridge."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.puts: list[tuple[str, dict]] = []
        self.states: dict[str, dict] = {}
        self._lock = threading.Lock()

    def put(self, path: str, body: dict):
        if self.fail_on and path.startswith(self.fail_on):
            raise ClientError(f"PUT {path} failed")
        with self._lock:
            self.puts.append((path, body))
        return [{"success": {path: True}}]

    def get(self, path: str):
        return self.states.get(path, {})


class FakeClock:
    """Wall clock that only moves when a waiter advances it."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def lights(client: FakeClient) -> list[Light]:
    return [
        Light(client, 1, "Bookshelf Left"),
        Light(client, 2, "Bookshelf Right"),
        Light(client, 3, "Office Go"),
    ]


@pytest.fixture
def groups(client: FakeClient) -> list[Group]:
    return [
        Group(client, 1, "Bookshelf"),
        Group(client, 2, "Office"),
        Group(client, 3, "Downstairs"),
        Group(client, 4, "Upstairs"),
    ]


@pytest.fixture
def inputs() -> list:
    """$1 = Bookshelf group, $2-$4 = lights."""
    return [
        GroupInput("Bookshelf"),
        LightInput("Bookshelf Left"),
        LightInput("Bookshelf Right"),
        LightInput("Office Go"),
    ]


@pytest.fixture
def device_mapper(lights, groups, inputs) -> DeviceMapper:
    return DeviceMapper(lights, groups, inputs)


# ============================================================================
# Bot Fixtures
# ============================================================================


@pytest.fixture
def logger() -> CollectingLogger:
    return CollectingLogger()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def waits() -> list[float]:
    """Seconds passed to the waiter, in call order."""
    return []


@pytest.fixture
def waiter(clock: FakeClock, waits: list[float]):
    """Returns immediately, advancing the fake clock instead of sleeping."""
    lock = threading.Lock()

    def wait(seconds: float) -> None:
        with lock:
            waits.append(seconds)
        clock.advance(seconds)

    return wait
