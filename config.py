"""
Shared configuration surface for the arena, evaluator and trainer.

Every driver takes a dataclass config and validates it in __post_init__
with the helpers below, so a bad option is rejected before any simulation
state exists.
"""
from typing import Iterable, List, Optional


GAME_IDS = ("rps", "mp", "pd")
ALG_IDS = ("hedge", "regret", "fp")
MAX_WORKERS = 16
UINT32_MAX = 0xFFFFFFFF


class ConfigError(ValueError):
    """Raised for an invalid game id, algorithm, count, seed or worker number."""


def check_game(game: str) -> str:
    if game not in GAME_IDS:
        raise ConfigError(f"Unknown game: {game!r} (expected one of {', '.join(GAME_IDS)})")
    return game


def check_alg(alg: str) -> str:
    if alg not in ALG_IDS:
        raise ConfigError(f"Unknown algorithm: {alg!r} (expected one of {', '.join(ALG_IDS)})")
    return alg


def check_positive_int(name: str, value) -> int:
    # bool is an int subclass; True is not a step count
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    return value


def check_lr(lr: Optional[float], required: bool = False) -> Optional[float]:
    if lr is None:
        if required:
            raise ConfigError("lr is required")
        return None
    if isinstance(lr, bool) or not isinstance(lr, (int, float)) or not lr > 0:
        raise ConfigError(f"lr must be a positive float, got {lr!r}")
    return float(lr)


def check_seed(seed) -> int:
    if isinstance(seed, bool) or not isinstance(seed, int) or not 0 <= seed <= UINT32_MAX:
        raise ConfigError(f"seed must be an unsigned 32-bit integer, got {seed!r}")
    return seed


def check_seeds(seeds: Iterable[int]) -> List[int]:
    seeds = list(seeds)
    if not seeds:
        raise ConfigError("seeds must contain at least one seed")
    return [check_seed(s) for s in seeds]


def check_workers(workers) -> int:
    if isinstance(workers, bool) or not isinstance(workers, int) or not 1 <= workers <= MAX_WORKERS:
        raise ConfigError(f"workers must be an integer in 1..{MAX_WORKERS}, got {workers!r}")
    return workers
