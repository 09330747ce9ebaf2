#!/usr/bin/env python3
"""
Stream a live Hedge-vs-Hedge arena run to stdout as JSON lines.

Starts one run in a RunRegistry, subscribes a printer to its ticks and
stops it after --duration seconds (or on Ctrl-C).
"""
import argparse
import json
import logging
import time
from dataclasses import asdict

from arena import ArenaOptions, ArenaRun, RunRegistry
from config import GAME_IDS, ConfigError


def main():
    parser = argparse.ArgumentParser(description="Live matrix-game arena")
    parser.add_argument("--game", type=str, default="rps", choices=list(GAME_IDS))
    parser.add_argument("--steps-per-tick", type=int, default=10)
    parser.add_argument("--seed", type=int, default=1234)
    parser.add_argument("--lr", type=float, default=0.5)
    parser.add_argument("--interval", type=float, default=0.1, help="Seconds between ticks")
    parser.add_argument("--duration", type=float, default=5.0, help="Seconds to run")
    parser.add_argument("--log-level", type=str, default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        options = ArenaOptions(game=args.game, steps_per_tick=args.steps_per_tick,
                               seed=args.seed, lr=args.lr, interval=args.interval)
    except ConfigError as e:
        parser.error(str(e))

    registry = RunRegistry()
    run = ArenaRun(options)
    run.on_tick(lambda payload: print(json.dumps(asdict(payload)), flush=True))
    registry.register(run)
    run.start()
    try:
        time.sleep(args.duration)
    except KeyboardInterrupt:
        pass
    finally:
        registry.stop(run.run_id)

    state = run.get_state()
    print(f"\nStopped {run.run_id} after {state.iter} steps: "
          f"A={[round(p, 3) for p in state.dist_a]} B={[round(p, 3) for p in state.dist_b]}")


if __name__ == "__main__":
    main()
