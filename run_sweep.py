#!/usr/bin/env python3
"""
Evaluation sweep across algorithm pairings.

Runs the batch evaluator for every (alg_a, alg_b) pair over the given
seeds and episodes. Each pairing writes its metric rows to
<output-dir>/<game>_<alg_a>_vs_<alg_b>/metrics.jsonl and its summary to
summary.json next to it; --trace additionally dumps the step-level history.
"""
import argparse
import json
import time
from dataclasses import asdict
from itertools import product
from pathlib import Path

from config import ALG_IDS, GAME_IDS, ConfigError
from evaluator import EvalConfig, generate_eval_trace, run_eval
from sinks import JsonlSink


def _fmt(mean, std):
    return "   n/a        " if mean is None else f"{mean:+.4f}±{std:.4f}"


def main():
    parser = argparse.ArgumentParser(description="Matrix-game learning-dynamics evaluation sweep")
    parser.add_argument("--game", type=str, default="rps", choices=list(GAME_IDS))
    parser.add_argument("--alg-a", type=str, nargs="+", default=["hedge"], choices=list(ALG_IDS))
    parser.add_argument("--alg-b", type=str, nargs="+", default=["hedge"], choices=list(ALG_IDS))
    parser.add_argument("--seeds", type=int, nargs="+", default=[0, 1, 2])
    parser.add_argument("--episodes", type=int, default=5)
    parser.add_argument("--steps-per-ep", type=int, default=500)
    parser.add_argument("--lr", type=float, default=None)
    parser.add_argument("--output-dir", type=str, default="experiments/results/eval")
    parser.add_argument("--trace", action="store_true", help="Also write the step-level trace")
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    try:
        configs = [
            EvalConfig(game=args.game, alg_a=a, alg_b=b, seeds=args.seeds,
                       episodes=args.episodes, steps_per_ep=args.steps_per_ep, lr=args.lr)
            for a, b in product(args.alg_a, args.alg_b)
        ]
    except ConfigError as e:
        parser.error(str(e))

    print(f"Total pairings: {len(configs)}")
    print(f"  Game: {args.game}")
    print(f"  Seeds: {args.seeds}")
    print(f"  Episodes x steps: {args.episodes} x {args.steps_per_ep}")

    if args.dry_run:
        for cfg in configs:
            print(f"  {cfg.game}_{cfg.alg_a}_vs_{cfg.alg_b}")
        return

    out_root = Path(args.output_dir)
    completed = []
    for i, cfg in enumerate(configs, 1):
        name = f"{cfg.game}_{cfg.alg_a}_vs_{cfg.alg_b}"
        run_dir = out_root / name
        t0 = time.time()
        result = run_eval(cfg, sink=JsonlSink(run_dir, extra={"pairing": name}))
        s = result.summary
        print(
            f"  [{i}/{len(configs)}] {name}: "
            f"rA={_fmt(s.avg_reward_a_mean, s.avg_reward_a_std)} "
            f"winA={_fmt(s.win_a_mean, s.win_a_std)} "
            f"coop={_fmt(s.coop_rate_mean, s.coop_rate_std)} "
            f"l2={_fmt(s.l2_dist_mean, s.l2_dist_std)} "
            f"({time.time() - t0:.1f}s)"
        )
        if args.trace:
            trace = generate_eval_trace(cfg)
            with open(run_dir / "trace.json", "w") as f:
                json.dump(asdict(trace), f)
        completed.append({"name": name, "config": asdict(cfg), "summary": asdict(s)})

    summary_path = out_root / "sweep_summary.json"
    out_root.mkdir(parents=True, exist_ok=True)
    with open(summary_path, "w") as f:
        json.dump({"pairings": completed}, f, indent=2)
    print(f"\nDone. Summary: {summary_path}")


if __name__ == "__main__":
    main()
