#!/usr/bin/env python3
"""
Self-play REINFORCE: two tanh/softmax policies co-evolve in a repeated game.

Each player observes [1, one_hot(opponent's previous action)] (zeros on the
first step of an episode), both sample simultaneously, and after every
episode each policy takes one REINFORCE step with the episode's mean reward
as baseline. The players are independent learners: each treats the other
as part of the environment.

Distributed mode runs N independently seeded copies (seed = base_seed + i)
and averages their learning curves per episode. Workers share nothing, so
running them in parallel or one after another gives the same result.
"""
import argparse
import json
import uuid
from concurrent.futures import ProcessPoolExecutor
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Union

import numpy as np

from config import (ConfigError, check_game, check_lr, check_positive_int,
                    check_seed, check_workers)
from matrix_games import action_entropy, exploitability, get_game
from prng import Mulberry32
from reinforce import TanhSoftmaxPolicy
from strategy import sample_action


@dataclass
class TrainConfig:
    game: str
    episodes: int = 50
    steps_per_ep: int = 200
    lr: float = 0.05
    hidden: int = 16
    seed: int = 1234

    def __post_init__(self):
        check_game(self.game)
        check_positive_int("episodes", self.episodes)
        check_positive_int("steps_per_ep", self.steps_per_ep)
        self.lr = check_lr(self.lr, required=True)
        check_positive_int("hidden", self.hidden)
        check_seed(self.seed)


@dataclass
class TrainLogEntry:
    ep: int
    avg_reward_a: float
    avg_reward_b: float
    win_a: Optional[float]


@dataclass
class SingleRunResult:
    run_id: str
    config: TrainConfig
    logs: List[TrainLogEntry]
    policy_a: TanhSoftmaxPolicy
    policy_b: TanhSoftmaxPolicy
    actions_a: List[str]
    actions_b: List[str]
    kind: str = field(default="single", init=False)


@dataclass
class WorkerRun:
    run_id: str
    seed: int
    logs: List[TrainLogEntry]


@dataclass
class DistributedRunResult:
    workers: int
    base_seed: int
    worker_runs: List[WorkerRun]
    aggregated_logs: List[TrainLogEntry]
    config: TrainConfig
    actions_a: List[str]
    actions_b: List[str]
    kind: str = field(default="distributed", init=False)


TrainResult = Union[SingleRunResult, DistributedRunResult]


def _observation(obs_dim: int, opp_last: Optional[int]) -> np.ndarray:
    x = np.zeros(obs_dim)
    x[0] = 1.0  # bias
    if opp_last is not None:
        x[1 + opp_last] = 1.0
    return x


def train_selfplay(cfg: TrainConfig, log_interval: int = 0,
                   log_path: Optional[Path] = None) -> SingleRunResult:
    """Train both players for cfg.episodes episodes and return the logs and policies."""
    game = get_game(cfg.game)
    rng = Mulberry32(cfg.seed)
    n_a, n_b = game.n_actions_a, game.n_actions_b
    obs_dim = max(n_a, n_b) + 1

    policy_a = TanhSoftmaxPolicy(obs_dim, cfg.hidden, n_a, rng)
    policy_b = TanhSoftmaxPolicy(obs_dim, cfg.hidden, n_b, rng)
    logs: List[TrainLogEntry] = []

    for ep in range(1, cfg.episodes + 1):
        last_a = last_b = None
        obs_a, hid_a, probs_a, acts_a, rew_a = [], [], [], [], []
        obs_b, hid_b, probs_b, acts_b, rew_b = [], [], [], [], []

        for _ in range(cfg.steps_per_ep):
            x_a = _observation(obs_dim, last_b)
            x_b = _observation(obs_dim, last_a)
            h_a, p_a = policy_a.forward(x_a)
            h_b, p_b = policy_b.forward(x_b)
            a = sample_action(p_a, rng)
            b = sample_action(p_b, rng)
            r_a, r_b = game.payoffs(a, b)

            obs_a.append(x_a); hid_a.append(h_a); probs_a.append(p_a); acts_a.append(a); rew_a.append(r_a)
            obs_b.append(x_b); hid_b.append(h_b); probs_b.append(p_b); acts_b.append(b); rew_b.append(r_b)
            last_a, last_b = a, b

        policy_a.reinforce_update(obs_a, hid_a, probs_a, acts_a, rew_a, cfg.lr)
        policy_b.reinforce_update(obs_b, hid_b, probs_b, acts_b, rew_b, cfg.lr)

        avg_reward_a = sum(rew_a) / cfg.steps_per_ep
        avg_reward_b = sum(rew_b) / cfg.steps_per_ep
        win_a = (avg_reward_a + 1) / 2 if game.zero_sum else None
        entry = TrainLogEntry(ep=ep, avg_reward_a=avg_reward_a, avg_reward_b=avg_reward_b, win_a=win_a)
        logs.append(entry)

        if log_interval > 0 and ep % log_interval == 0:
            # Evaluate: opening-move distribution (no history yet)
            x0 = _observation(obs_dim, None)
            probs = policy_a.action_probs(x0)
            opp_probs = policy_b.action_probs(x0)
            metrics = {
                **asdict(entry),
                "agent_probs": probs.tolist(),
                "opponent_probs": opp_probs.tolist(),
                "agent_exploitability": exploitability(game.payoff_b_rows, probs),
                "opponent_exploitability": exploitability(game.payoff_a, opp_probs),
                "agent_entropy": action_entropy(probs),
                "opponent_entropy": action_entropy(opp_probs),
            }
            if log_path is not None:
                with open(log_path, "a") as f:
                    f.write(json.dumps(metrics) + "\n")
            print(
                f"[ep {ep:>5d}] rA={avg_reward_a:+.3f} rB={avg_reward_b:+.3f} "
                f"agent={probs.round(3)} opp={opp_probs.round(3)}"
            )

    return SingleRunResult(
        run_id=uuid.uuid4().hex,
        config=cfg,
        logs=logs,
        policy_a=policy_a,
        policy_b=policy_b,
        actions_a=list(game.actions_a),
        actions_b=list(game.actions_b),
    )


def _train_worker(cfg: TrainConfig) -> WorkerRun:
    run = train_selfplay(cfg)
    return WorkerRun(run_id=run.run_id, seed=cfg.seed, logs=run.logs)


def aggregate_logs(worker_runs: List[WorkerRun]) -> List[TrainLogEntry]:
    """Per-episode mean over workers; win_a averages only the workers that report it."""
    n = len(worker_runs)
    episodes = max(len(r.logs) for r in worker_runs)
    aggregated = []
    for idx in range(episodes):
        entries = [r.logs[idx] for r in worker_runs if idx < len(r.logs)]
        wins = [e.win_a for e in entries if e.win_a is not None]
        aggregated.append(TrainLogEntry(
            ep=idx + 1,
            avg_reward_a=sum(e.avg_reward_a for e in entries) / n,
            avg_reward_b=sum(e.avg_reward_b for e in entries) / n,
            win_a=sum(wins) / len(wins) if wins else None,
        ))
    return aggregated


def train_distributed(cfg: TrainConfig, workers: int, max_parallel: int = 1) -> DistributedRunResult:
    """Run `workers` seeded trainers (seed = cfg.seed + i) and aggregate their logs."""
    check_workers(workers)
    check_positive_int("max_parallel", max_parallel)
    if cfg.seed + workers - 1 > 0xFFFFFFFF:
        raise ConfigError(f"seed {cfg.seed} + {workers} workers overflows 32 bits")
    worker_cfgs = [replace(cfg, seed=cfg.seed + i) for i in range(workers)]

    if max_parallel > 1 and workers > 1:
        with ProcessPoolExecutor(max_workers=min(max_parallel, workers)) as pool:
            worker_runs = list(pool.map(_train_worker, worker_cfgs))
    else:
        worker_runs = [_train_worker(c) for c in worker_cfgs]

    game = get_game(cfg.game)
    return DistributedRunResult(
        workers=workers,
        base_seed=cfg.seed,
        worker_runs=worker_runs,
        aggregated_logs=aggregate_logs(worker_runs),
        config=cfg,
        actions_a=list(game.actions_a),
        actions_b=list(game.actions_b),
    )


def run_training(cfg: TrainConfig, workers: Optional[int] = None, max_parallel: int = 1) -> TrainResult:
    """Single run when workers is None, otherwise the aggregated distributed run."""
    if workers is None:
        return train_selfplay(cfg)
    return train_distributed(cfg, workers, max_parallel)


def main():
    parser = argparse.ArgumentParser(description="Matrix-game self-play REINFORCE")
    parser.add_argument("--game", type=str, default="rps", choices=["rps", "mp", "pd"])
    parser.add_argument("--episodes", type=int, default=50)
    parser.add_argument("--steps-per-ep", type=int, default=200)
    parser.add_argument("--lr", type=float, default=0.05)
    parser.add_argument("--hidden", type=int, default=16)
    parser.add_argument("--seed", type=int, default=1234)
    parser.add_argument("--workers", type=int, default=None,
                        help="Run N seeded workers and aggregate their curves (1-16)")
    parser.add_argument("--max-parallel", type=int, default=1)
    parser.add_argument("--log-interval", type=int, default=10)
    parser.add_argument("--output-dir", type=str, default="experiments/results/selfplay")
    args = parser.parse_args()

    try:
        cfg = TrainConfig(game=args.game, episodes=args.episodes, steps_per_ep=args.steps_per_ep,
                          lr=args.lr, hidden=args.hidden, seed=args.seed)
        if args.workers is not None:
            check_workers(args.workers)
    except ConfigError as e:
        parser.error(str(e))

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    if args.workers is None:
        log_path = out_dir / "metrics.jsonl"
        result = train_selfplay(cfg, log_interval=args.log_interval, log_path=log_path)
        with open(out_dir / "policies.json", "w") as f:
            json.dump({"policy_a": result.policy_a.to_dict(), "policy_b": result.policy_b.to_dict()}, f)
        print(f"\nDone. Metrics saved to {log_path}")
        return

    result = train_distributed(cfg, args.workers, args.max_parallel)
    for run in result.worker_runs:
        worker_dir = out_dir / f"seed_{run.seed}"
        worker_dir.mkdir(exist_ok=True)
        with open(worker_dir / "logs.jsonl", "w") as f:
            for entry in run.logs:
                f.write(json.dumps(asdict(entry)) + "\n")
    agg_path = out_dir / "aggregated.jsonl"
    with open(agg_path, "w") as f:
        for entry in result.aggregated_logs:
            f.write(json.dumps(asdict(entry)) + "\n")
    last = result.aggregated_logs[-1]
    print(f"{result.workers} workers, base seed {result.base_seed}: "
          f"final rA={last.avg_reward_a:+.3f} rB={last.avg_reward_b:+.3f}")
    print(f"\nDone. Aggregated curve saved to {agg_path}")


if __name__ == "__main__":
    main()
