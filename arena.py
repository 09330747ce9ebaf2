"""
Live arena: one continuously ticking Hedge-vs-Hedge simulation per run.

A run goes created -> running -> stopped | disconnected. Each tick advances
`steps_per_tick` simulation steps and then pushes a TickPayload snapshot to
every subscriber. Ticks are driven by a background scheduler thread after
start(), or synchronously by calling tick() directly.

RunRegistry is the only object shared between runs: a lock-guarded map of
run_id -> ArenaRun.

Player B updates with payoff_b_rows (its own actions on the rows), so PD and
RPS trajectories differ from engines that feed B the untransposed payoff_b.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np

from config import check_game, check_lr, check_positive_int, check_seed, ConfigError
from matrix_games import get_game
from prng import Mulberry32
from steppers import DEFAULT_LR, HedgeStepper
from strategy import sample_action


logger = logging.getLogger(__name__)

CREATED, RUNNING, STOPPED, DISCONNECTED = "created", "running", "stopped", "disconnected"


class RunStateError(RuntimeError):
    """start() on a run that has already been stopped or disconnected."""


@dataclass
class ArenaOptions:
    game: str
    steps_per_tick: int = 10
    seed: int = 1234
    lr: float = DEFAULT_LR
    interval: float = 0.01  # seconds between scheduler ticks

    def __post_init__(self):
        check_game(self.game)
        check_positive_int("steps_per_tick", self.steps_per_tick)
        check_seed(self.seed)
        self.lr = check_lr(self.lr, required=True)
        if not self.interval >= 0:
            raise ConfigError(f"interval must be >= 0, got {self.interval!r}")


@dataclass
class TickPayload:
    iter: int
    reward_a: float
    reward_b: float
    reward_mean: float
    dist_a: List[float]
    dist_b: List[float]
    last_action_a: int
    last_action_b: int
    joint_counts: List[List[int]] = field(default_factory=list)


TickCallback = Callable[[TickPayload], None]


class ArenaRun:
    """One arena simulation with its own PRNG, Hedge states and subscribers."""

    def __init__(self, options: ArenaOptions):
        self.options = options
        self.run_id = uuid.uuid4().hex
        self.game = get_game(options.game)
        self.status = CREATED

        self._rng = Mulberry32(options.seed)
        self._hedge_a = HedgeStepper(self.game.n_actions_a, options.lr)
        self._hedge_b = HedgeStepper(self.game.n_actions_b, options.lr)
        self._p_a = self._hedge_a.strategy.copy()
        self._p_b = self._hedge_b.strategy.copy()
        self._joint_counts = np.zeros((self.game.n_actions_a, self.game.n_actions_b), dtype=np.int64)
        self._iter = 0
        self._last_a = 0
        self._last_b = 0
        self._reward_a = 0.0
        self._reward_b = 0.0

        self._lock = threading.RLock()
        self._subscribers: Dict[int, TickCallback] = {}
        self._next_token = 0
        self._halt = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --- simulation ---

    def _step_once(self):
        # Both players update against the other's strategy from before this step.
        p_a_prev, p_b_prev = self._p_a, self._p_b
        self._p_a = self._hedge_a.step(p_b_prev, self.game.payoff_a)
        self._p_b = self._hedge_b.step(p_a_prev, self.game.payoff_b_rows)
        a = sample_action(self._p_a, self._rng)
        b = sample_action(self._p_b, self._rng)
        self._reward_a, self._reward_b = self.game.payoffs(a, b)
        self._last_a, self._last_b = a, b
        self._joint_counts[a, b] += 1
        self._iter += 1

    def _snapshot(self) -> TickPayload:
        return TickPayload(
            iter=self._iter,
            reward_a=self._reward_a,
            reward_b=self._reward_b,
            reward_mean=(self._reward_a + self._reward_b) / 2,
            dist_a=self._p_a.tolist(),
            dist_b=self._p_b.tolist(),
            last_action_a=self._last_a,
            last_action_b=self._last_b,
            joint_counts=self._joint_counts.tolist(),
        )

    def tick(self) -> TickPayload:
        """Advance steps_per_tick steps, then notify every current subscriber."""
        with self._lock:
            if self.status in (STOPPED, DISCONNECTED):
                raise RunStateError(f"Arena run {self.run_id} is {self.status}")
            for _ in range(self.options.steps_per_tick):
                self._step_once()
            payload = self._snapshot()
            subscribers = list(self._subscribers.values())
        for cb in subscribers:
            try:
                cb(payload)
            except Exception:
                logger.exception("Arena %s: subscriber %r failed on tick %d", self.run_id, cb, payload.iter)
        return payload

    def get_state(self) -> TickPayload:
        with self._lock:
            return self._snapshot()

    def joint_frequencies(self) -> np.ndarray:
        """Joint-action counts divided by the number of steps so far."""
        with self._lock:
            if self._iter == 0:
                return np.zeros(self._joint_counts.shape)
            return self._joint_counts / self._iter

    # --- subscriptions ---

    def on_tick(self, callback: TickCallback) -> Callable[[], bool]:
        """Register a listener; returns an unsubscribe function."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback

        def unsubscribe() -> bool:
            with self._lock:
                return self._subscribers.pop(token, None) is not None

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # --- lifecycle ---

    def _loop(self):
        interval = self.options.interval
        while not self._halt.is_set():
            try:
                self.tick()
            except RunStateError:
                break
            if self._halt.wait(interval):
                break

    def start(self):
        with self._lock:
            if self.status == RUNNING:
                return
            if self.status in (STOPPED, DISCONNECTED):
                raise RunStateError(f"Arena run {self.run_id} is {self.status}")
            self.status = RUNNING
            self._thread = threading.Thread(target=self._loop, name=f"arena-{self.run_id[:8]}", daemon=True)
            self._thread.start()
        logger.info("Arena %s started (game=%s seed=%d)", self.run_id, self.game.id, self.options.seed)

    def _terminate(self, status: str):
        with self._lock:
            if self.status in (STOPPED, DISCONNECTED):
                return
            self.status = status
            self._halt.set()
            thread, self._thread = self._thread, None
            self._subscribers.clear()
        # Joining outside the lock lets an in-flight tick finish.
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        logger.info("Arena %s %s after %d steps", self.run_id, status, self._iter)

    def stop(self):
        self._terminate(STOPPED)

    def disconnect(self):
        self._terminate(DISCONNECTED)


class RunRegistry:
    """Creation / lookup / removal map for live arena runs."""

    def __init__(self):
        self._runs: Dict[str, ArenaRun] = {}
        self._lock = threading.Lock()

    def register(self, run: ArenaRun):
        with self._lock:
            if run.run_id in self._runs:
                raise ValueError(f"Run {run.run_id} is already registered")
            self._runs[run.run_id] = run

    def get(self, run_id: str) -> Optional[ArenaRun]:
        with self._lock:
            return self._runs.get(run_id)

    def stop(self, run_id: str) -> bool:
        """Stop and remove a run. False means no such run; nothing happened."""
        with self._lock:
            run = self._runs.pop(run_id, None)
            if run is None:
                return False
        run.stop()
        return True

    def list(self) -> List[str]:
        with self._lock:
            return list(self._runs)

    def start(self, options: ArenaOptions) -> ArenaRun:
        run = ArenaRun(options)
        self.register(run)
        run.start()
        return run

    def stop_all(self):
        for run_id in self.list():
            self.stop(run_id)
