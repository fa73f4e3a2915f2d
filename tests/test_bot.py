"""Tests for the program runtime."""

from __future__ import annotations

import random
import threading
import time
from datetime import datetime

import pytest

from hue_bot.bot import Bot
from hue_bot.compiler import build
from hue_bot.errors import BotError, Cancelled, ClientError
from hue_bot.program.ast import (
    CountedLoop,
    DeadlineLoop,
    InputRef,
    Node,
    Program,
    RandomRange,
    SerialControl,
    Transition,
)


@pytest.fixture
def bot(device_mapper, logger, waiter, clock) -> Bot:
    return Bot(device_mapper, logger=logger, waiter=waiter, clock=clock)


def compile_program(tokens: dict, version: float = 1.0) -> Program:
    program = build({"name": "Test", **tokens}, version)
    assert program.errors == []
    return program


def on(inputs, **state) -> dict:
    return {"transition": {"state": {"on": True, **state}, "devices": {"inputs": inputs}}}


def event_data(logger, event_type: str) -> list[dict]:
    return [data for _, t, data in logger.events if t == event_type]


# ============================================================================
# Transitions
# ============================================================================


def test_single_transition(bot, logger, client, waits):
    bot.execute(compile_program(on(["$2"])))

    assert logger.event_types() == ["start", "transition", "set_state", "pause", "stop"]
    assert event_data(logger, "start") == [{"program": "Test"}]
    assert event_data(logger, "transition") == [{"devices": ["Bookshelf Left"]}]
    assert event_data(logger, "set_state")[0]["device"] == "Bookshelf Left"
    assert client.puts == [("/lights/1/state", {"on": True})]
    assert waits == [0.4]


def test_transition_waits_for_transition_time(bot, waits):
    bot.execute(compile_program(on(["$2"], time=1.5)))
    assert waits == [1.5]


def test_transition_without_wait(bot, logger, waits):
    program = build({"transition": {"state": {"on": True}, "devices": {"inputs": ["$2"]}, "wait": False}}, 1.1)
    bot.execute(program)

    assert waits == []
    assert "pause" not in logger.event_types()


def test_groups_use_action_endpoint(bot, client):
    bot.execute(compile_program(on(["$1"])))
    assert client.puts == [("/groups/1/action", {"on": True})]


def test_all_inputs_fan_out(bot, logger, client, waits):
    bot.execute(compile_program(on("$all")))

    assert event_data(logger, "transition") == [
        {"devices": ["Bookshelf", "Bookshelf Left", "Bookshelf Right", "Office Go"]}
    ]
    assert sorted(path for path, _ in client.puts) == [
        "/groups/1/action",
        "/lights/1/state",
        "/lights/2/state",
        "/lights/3/state",
    ]
    assert logger.event_types().count("set_state") == 4
    assert waits == [0.4] * 4


def test_transition_pauses(bot, logger, waits):
    program = build({
        "transition": {
            "state": {"on": True},
            "devices": {"inputs": ["$2"]},
            "pause": {"before": 1, "after": 2},
        }
    }, 1.1)
    bot.execute(program)

    assert logger.event_types() == ["start", "transition", "pause", "set_state", "pause", "pause", "stop"]
    assert waits == [1, 0.4, 2]


# ============================================================================
# Serial and parallel
# ============================================================================


def test_serial_counted_loop(bot, logger, client):
    bot.execute(compile_program({
        "serial": {"loop": {"count": 5}, "steps": [on(["$2"]), on(["$3"])]}
    }))

    types = logger.event_types()
    assert types[0] == "start" and types[-1] == "stop"
    assert types[1:-1] == ["serial", "transition", "set_state", "pause", "transition", "set_state", "pause"] * 5
    assert event_data(logger, "serial")[0] == {"loop": "counted"}
    assert [path for path, _ in client.puts] == ["/lights/1/state", "/lights/2/state"] * 5


def test_loop_pause_runs_every_iteration(bot, waits):
    bot.execute(compile_program({
        "serial": {"loop": {"count": 2, "pause": 3}, "pause": 10, "steps": [on(["$2"])]}
    }))
    assert waits == [0.4, 3, 0.4, 3, 10]


def test_parallel_runs_children_concurrently(device_mapper, logger, clock):
    # Both children must be inside their wait at the same time
    barrier = threading.Barrier(2, timeout=5)
    bot = Bot(device_mapper, logger=logger, waiter=lambda seconds: barrier.wait(), clock=clock)

    bot.execute(compile_program({"parallel": {"steps": [on(["$2"]), on(["$3"])]}}))

    types = logger.event_types()
    assert types[:2] == ["start", "parallel"]
    assert types[-1] == "stop"
    assert types.count("transition") == 2
    assert types.count("set_state") == 2
    assert event_data(logger, "parallel") == [{"loop": "counted"}]


def test_parallel_serial_branches_interleave(device_mapper, logger, clock):
    barrier = threading.Barrier(2, timeout=5)
    bot = Bot(device_mapper, logger=logger, waiter=lambda seconds: barrier.wait(), clock=clock)

    def branch(ref):
        return {"serial": {"steps": [on([ref], bri=1), on([ref], bri=2), on([ref], bri=3)]}}

    bot.execute(compile_program({"parallel": {"steps": [branch("$2"), branch("$3")]}}))

    set_states = event_data(logger, "set_state")
    devices = [e["device"] for e in set_states]
    # Each step of one branch meets the same step of the other at the barrier
    for i in range(0, 6, 2):
        assert sorted(devices[i:i + 2]) == ["Bookshelf Left", "Bookshelf Right"]
    for name in ("Bookshelf Left", "Bookshelf Right"):
        assert [e["state"]["bri"] for e in set_states if e["device"] == name] == [1, 2, 3]


def test_nested_controls(bot, client):
    bot.execute(compile_program({
        "serial": {
            "steps": [
                on(["$2"]),
                {"parallel": {"loop": {"count": 2}, "steps": [on(["$3"]), on(["$4"])]}},
                on(["$2"], bri=0),
            ]
        }
    }))

    paths = [path for path, _ in client.puts]
    assert paths[0] == "/lights/1/state"
    assert sorted(paths[1:5]) == ["/lights/2/state"] * 2 + ["/lights/3/state"] * 2
    assert client.puts[-1] == ("/lights/1/state", {"on": True, "bri": 0})


# ============================================================================
# Loops
# ============================================================================


def test_random_count_drawn_once(bot, logger, monkeypatch):
    calls = []

    def uniform(lo, hi):
        calls.append((lo, hi))
        return 3.4

    monkeypatch.setattr(random, "uniform", uniform)
    bot.execute(compile_program({
        "serial": {"loop": {"random": {"min": 1, "max": 10}}, "steps": [on(["$2"])]}
    }, 1.2))

    assert calls == [(1, 10)]
    assert logger.event_types().count("serial") == 3


def test_random_pause_resolved_each_time(bot, waits):
    step = on(["$2"])
    step["transition"]["pause"] = {"after": {"random": {"min": 2, "max": 2}}}
    bot.execute(compile_program({"serial": {"loop": {"count": 2}, "steps": [step]}}, 1.2))

    assert waits == [0.4, 2, 0.4, 2]


def test_timer_loop(bot, logger, waits):
    bot.execute(compile_program({
        "serial": {"loop": {"timer": {"minutes": 1}}, "steps": [on(["$2"], time=10)]}
    }))

    assert logger.event_types().count("serial") == 6
    assert event_data(logger, "serial")[0] == {"loop": "timer"}
    assert sum(waits) == 60


def test_timer_loop_may_overshoot(bot, logger):
    bot.execute(compile_program({
        "serial": {"loop": {"timer": {"minutes": 1}}, "steps": [on(["$2"], time=25)]}
    }))
    assert logger.event_types().count("serial") == 3


def test_deadline_loop(bot, logger, clock):
    stop_time = datetime.fromtimestamp(clock.now + 2.5)
    transition = Transition({"on": True, "transitiontime": 10}, (InputRef(2),))
    program = Program("Deadline", 1.0, Node(SerialControl(DeadlineLoop(stop_time)), (Node(transition),)))

    bot.execute(program)

    assert logger.event_types().count("serial") == 3
    assert event_data(logger, "serial")[0] == {"loop": "deadline"}


def test_deadline_in_past_runs_zero_times(bot, logger, client):
    bot.execute(compile_program({
        "serial": {"loop": {"until": {"date": "2000-01-01", "time": "00:00"}}, "steps": [on(["$2"])]}
    }))

    assert logger.event_types() == ["start", "stop"]
    assert client.puts == []


def test_zero_count_loop(bot, logger):
    program = Program("Zero", 1.0, Node(SerialControl(CountedLoop(RandomRange(0, 0))), (Node(
        Transition({"on": True}, (InputRef(2),))
    ),)))
    bot.execute(program)
    assert logger.event_types() == ["start", "stop"]


# ============================================================================
# Cancellation and errors
# ============================================================================


def test_cancel_from_waiter(device_mapper, logger, clock):
    calls = []

    def waiter(seconds):
        calls.append(seconds)
        if len(calls) == 3:
            bot.cancel()

    bot = Bot(device_mapper, logger=logger, waiter=waiter, clock=clock)
    with pytest.raises(Cancelled):
        bot.execute(compile_program({"serial": {"loop": {"infinite": True}, "steps": [on(["$2"])]}}))

    assert bot.cancelled
    assert len(calls) == 3
    assert "stop" not in logger.event_types()


def test_cancel_wakes_sleeping_bot(device_mapper, logger):
    bot = Bot(device_mapper, logger=logger)
    program = compile_program({"serial": {"loop": {"infinite": True}, "steps": [on("$all", time=60)]}})
    errors = []

    def run():
        try:
            bot.execute(program)
        except Cancelled as e:
            errors.append(e)

    thread = threading.Thread(target=run)
    thread.start()
    for _ in range(500):
        if "pause" in logger.event_types():
            break
        time.sleep(0.01)

    bot.cancel()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert len(errors) == 1
    assert "stop" not in logger.event_types()


def test_cancelled_bot_does_not_start(bot, logger):
    bot.cancel()
    with pytest.raises(Cancelled):
        bot.execute(compile_program(on(["$2"])))
    assert logger.event_types() == []


def test_device_error_propagates(bot, client, logger):
    client.fail_on = "/lights/1"

    with pytest.raises(ClientError, match="PUT /lights/1/state failed"):
        bot.execute(compile_program(on(["$2"])))
    assert "stop" not in logger.event_types()


def test_device_error_stops_parallel_siblings(bot, client):
    client.fail_on = "/lights/3"

    with pytest.raises(ClientError):
        bot.execute(compile_program({
            "parallel": {"steps": [
                {"serial": {"loop": {"infinite": True}, "steps": [on(["$2"])]}},
                on(["$4"]),
            ]}
        }))


def test_bot_runs_again_after_error(bot, client, logger):
    client.fail_on = "/lights/3"
    with pytest.raises(ClientError):
        bot.execute(compile_program(on("$all")))

    client.fail_on = None
    bot.execute(compile_program(on(["$2"])))
    assert logger.event_types()[-1] == "stop"


def test_unmapped_device(bot):
    with pytest.raises(BotError, match=r"Unmapped device '\$9'"):
        bot.execute(compile_program(on(["$9"])))


def test_unknown_light_name(bot):
    program = compile_program({"transition": {"state": {"on": True}, "devices": {"lights": ["Nope"]}}})
    with pytest.raises(BotError, match="Unmapped light 'Nope'"):
        bot.execute(program)
