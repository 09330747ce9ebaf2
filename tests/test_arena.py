import threading
import time

import numpy as np
import pytest

from arena import (ArenaOptions, ArenaRun, RunRegistry, RunStateError,
                   CREATED, DISCONNECTED, RUNNING, STOPPED)
from config import ConfigError


def test_options_validation():
    with pytest.raises(ConfigError):
        ArenaOptions(game="go")
    with pytest.raises(ConfigError):
        ArenaOptions(game="rps", steps_per_tick=0)
    with pytest.raises(ConfigError):
        ArenaOptions(game="rps", seed=-1)
    with pytest.raises(ConfigError):
        ArenaOptions(game="rps", lr=0)
    with pytest.raises(ConfigError):
        ArenaOptions(game="rps", lr=None)


def test_options_keep_lr_as_float():
    assert isinstance(ArenaOptions(game="rps", lr=2).lr, float)


def test_hedge_self_play_rps_joint_frequencies_near_uniform():
    run = ArenaRun(ArenaOptions(game="rps", steps_per_tick=10, seed=1234, lr=0.5))
    for _ in range(100):
        run.tick()
    state = run.get_state()
    assert state.iter == 1000
    freqs = run.joint_frequencies()
    assert freqs.shape == (3, 3)
    assert np.all(np.abs(freqs - 1 / 9) <= 0.05)


def test_tick_payload_contents():
    run = ArenaRun(ArenaOptions(game="mp", steps_per_tick=5, seed=1))
    payload = run.tick()
    assert payload.iter == 5
    assert sum(sum(row) for row in payload.joint_counts) == 5
    assert len(payload.dist_a) == 2 and len(payload.dist_b) == 2
    assert payload.reward_a == -payload.reward_b
    assert payload.reward_mean == 0.0


def test_get_state_does_not_advance():
    run = ArenaRun(ArenaOptions(game="rps"))
    run.tick()
    assert run.get_state().iter == run.get_state().iter == 10


def test_same_seed_same_trajectory():
    a = ArenaRun(ArenaOptions(game="pd", seed=77))
    b = ArenaRun(ArenaOptions(game="pd", seed=77))
    for _ in range(20):
        assert a.tick() == b.tick()


def test_many_listeners_and_unsubscribe():
    run = ArenaRun(ArenaOptions(game="rps"))
    got_1, got_2 = [], []
    unsub_1 = run.on_tick(got_1.append)
    run.on_tick(got_2.append)
    run.tick()
    assert unsub_1() is True
    assert unsub_1() is False
    run.tick()
    assert [p.iter for p in got_1] == [10]
    assert [p.iter for p in got_2] == [10, 20]


def test_failing_subscriber_is_isolated(caplog):
    run = ArenaRun(ArenaOptions(game="rps"))
    received = []

    def broken(payload):
        raise RuntimeError("socket closed")

    run.on_tick(broken)
    run.on_tick(received.append)
    payload = run.tick()
    assert received == [payload]
    assert "subscriber" in caplog.text


def test_start_ticks_in_background_and_stop_releases():
    run = ArenaRun(ArenaOptions(game="rps", interval=0.001))
    ticked = threading.Event()
    run.on_tick(lambda p: ticked.set())
    assert run.status == CREATED
    run.start()
    run.start()  # idempotent
    assert run.status == RUNNING
    assert ticked.wait(5.0)
    run.stop()
    assert run.status == STOPPED
    assert run.subscriber_count == 0
    frozen = run.get_state().iter
    time.sleep(0.05)
    assert run.get_state().iter == frozen
    with pytest.raises(RunStateError):
        run.start()
    with pytest.raises(RunStateError):
        run.tick()
    assert run.get_state().iter == frozen


def test_disconnect_is_terminal():
    run = ArenaRun(ArenaOptions(game="mp", interval=0.001))
    run.start()
    run.disconnect()
    assert run.status == DISCONNECTED
    run.stop()
    assert run.status == DISCONNECTED


def test_runs_are_independent():
    a = ArenaRun(ArenaOptions(game="rps", seed=5))
    b = ArenaRun(ArenaOptions(game="rps", seed=5))
    a.tick()
    a.stop()
    assert b.get_state().iter == 0
    b.tick()
    assert b.get_state().iter == 10


def test_registry_stop_unknown_returns_false():
    registry = RunRegistry()
    assert registry.stop("missing") is False
    assert registry.get("missing") is None


def test_registry_lifecycle():
    registry = RunRegistry()
    run = registry.start(ArenaOptions(game="rps", interval=0.001))
    other = ArenaRun(ArenaOptions(game="pd"))
    registry.register(other)
    assert set(registry.list()) == {run.run_id, other.run_id}
    assert registry.get(run.run_id) is run
    assert registry.stop(run.run_id) is True
    assert run.status == STOPPED
    assert registry.list() == [other.run_id]
    assert registry.stop(run.run_id) is False
    with pytest.raises(ValueError):
        registry.register(other)
    registry.stop_all()
    assert registry.list() == []


def test_large_lr_prisoners_dilemma_defects():
    run = ArenaRun(ArenaOptions(game="pd", lr=1000.0))
    payload = run.tick()
    assert all(np.isfinite(payload.dist_a)) and all(np.isfinite(payload.dist_b))
    assert payload.dist_a[1] > 0.99 and payload.dist_b[1] > 0.99
