"""
Batch evaluation of online-learning dynamics.

For every (seed, episode) pair both players get fresh steppers and uniform
strategies, then play `steps_per_ep` update-then-sample rounds. Each seed
owns one PRNG stream that its episodes consume in order, so re-running a
config reproduces the metric rows bit-for-bit.

Per-episode metrics:
    zero-sum games:  win_a = (avg_reward_a + 1) / 2, l2_dist = ||pA - uniform||
    Prisoner's Dilemma: coop_rate = fraction of steps where A cooperated
The summary holds the population mean/std of every non-null metric.

Player B updates with payoff_b_rows (its own actions on the rows), so PD and
RPS trajectories differ from runners that feed B the untransposed payoff_b.
"""
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from config import check_alg, check_game, check_lr, check_positive_int, check_seeds
from matrix_games import COOPERATE, GameSpec, get_game
from prng import Mulberry32
from steppers import make_stepper
from strategy import sample_action, uniform


@dataclass
class EvalConfig:
    game: str
    alg_a: str
    alg_b: str
    seeds: List[int]
    episodes: int
    steps_per_ep: int
    lr: Optional[float] = None

    def __post_init__(self):
        check_game(self.game)
        check_alg(self.alg_a)
        check_alg(self.alg_b)
        self.seeds = check_seeds(self.seeds)
        check_positive_int("episodes", self.episodes)
        check_positive_int("steps_per_ep", self.steps_per_ep)
        self.lr = check_lr(self.lr)


@dataclass
class MetricRow:
    seed: int
    ep: int
    win_a: Optional[float]
    avg_reward_a: float
    coop_rate: Optional[float]
    l2_dist: Optional[float]


@dataclass
class SummaryRow:
    win_a_mean: Optional[float]
    win_a_std: Optional[float]
    avg_reward_a_mean: Optional[float]
    avg_reward_a_std: Optional[float]
    coop_rate_mean: Optional[float]
    coop_rate_std: Optional[float]
    l2_dist_mean: Optional[float]
    l2_dist_std: Optional[float]


@dataclass
class EvalResult:
    config: EvalConfig
    metrics: List[MetricRow]
    summary: SummaryRow


@dataclass
class TraceStep:
    seed: int
    ep: int
    t: int
    action_a: int
    action_b: int
    reward_a: float
    reward_b: float
    p_a: List[float]
    p_b: List[float]


@dataclass
class EvalTrace:
    steps: List[TraceStep]
    actions_a: List[str]
    actions_b: List[str]


StepHook = Callable[[TraceStep], None]


def _play_episode(cfg: EvalConfig, game: GameSpec, seed: int, ep: int,
                  rng: Mulberry32, on_step: Optional[StepHook] = None) -> MetricRow:
    """Run one episode; `on_step` (if given) receives every step of the history."""
    step_a = make_stepper(cfg.alg_a, game.n_actions_a, cfg.lr)
    step_b = make_stepper(cfg.alg_b, game.n_actions_b, cfg.lr)
    uniform_a = uniform(game.n_actions_a)
    p_a = uniform_a.copy()
    p_b = uniform(game.n_actions_b)
    reward_sum_a = 0.0
    coop_count = 0

    for t in range(1, cfg.steps_per_ep + 1):
        # B responds to A's freshly updated strategy.
        p_a = step_a.step(p_b, game.payoff_a)
        p_b = step_b.step(p_a, game.payoff_b_rows)
        a = sample_action(p_a, rng)
        b = sample_action(p_b, rng)
        r_a, r_b = game.payoffs(a, b)
        reward_sum_a += r_a
        if a == COOPERATE:
            coop_count += 1
        if on_step is not None:
            on_step(TraceStep(seed=seed, ep=ep, t=t, action_a=a, action_b=b,
                              reward_a=r_a, reward_b=r_b,
                              p_a=p_a.tolist(), p_b=p_b.tolist()))

    avg_reward_a = reward_sum_a / cfg.steps_per_ep
    win_a = coop_rate = l2_dist = None
    if game.zero_sum:
        win_a = (avg_reward_a + 1) / 2
        l2_dist = float(np.sqrt(np.sum((p_a - uniform_a) ** 2)))
    else:
        coop_rate = coop_count / cfg.steps_per_ep
    return MetricRow(seed=seed, ep=ep, win_a=win_a, avg_reward_a=avg_reward_a,
                     coop_rate=coop_rate, l2_dist=l2_dist)


def _episodes(cfg: EvalConfig, on_step: Optional[StepHook] = None):
    game = get_game(cfg.game)
    for seed in cfg.seeds:
        rng = Mulberry32(seed)
        for ep in range(1, cfg.episodes + 1):
            yield _play_episode(cfg, game, seed, ep, rng, on_step)


def mean_std(xs: Sequence[float]) -> Dict[str, Optional[float]]:
    """Population mean and standard deviation; both None for an empty list."""
    if not xs:
        return {"mean": None, "std": None}
    m = sum(xs) / len(xs)
    var = sum((x - m) * (x - m) for x in xs) / len(xs)
    return {"mean": m, "std": math.sqrt(var)}


def summarize(rows: Sequence[MetricRow]) -> SummaryRow:
    stats = {}
    for name in ("win_a", "avg_reward_a", "coop_rate", "l2_dist"):
        ms = mean_std([getattr(r, name) for r in rows if getattr(r, name) is not None])
        stats[f"{name}_mean"] = ms["mean"]
        stats[f"{name}_std"] = ms["std"]
    return SummaryRow(**stats)


def run_eval(cfg: EvalConfig, sink=None) -> EvalResult:
    """Compute every metric row and the summary, writing each to `sink` once."""
    metrics = []
    for row in _episodes(cfg):
        if sink is not None:
            sink.insert_metric_row(row)
        metrics.append(row)
    summary = summarize(metrics)
    if sink is not None:
        sink.insert_summary_row(summary)
    return EvalResult(config=cfg, metrics=metrics, summary=summary)


def generate_eval_trace(cfg: EvalConfig) -> EvalTrace:
    """Full per-step action/probability history under the same dynamics as run_eval."""
    game = get_game(cfg.game)
    steps: List[TraceStep] = []
    for _ in _episodes(cfg, on_step=steps.append):
        pass
    return EvalTrace(steps=steps, actions_a=list(game.actions_a), actions_b=list(game.actions_b))
