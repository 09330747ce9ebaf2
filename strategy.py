"""Numeric helpers shared by the steppers, the arena, the evaluator and the trainer."""
import numpy as np

from prng import Mulberry32


def uniform(n: int) -> np.ndarray:
    return np.full(n, 1.0 / n)


def one_hot(n: int, idx: int) -> np.ndarray:
    v = np.zeros(n)
    v[idx] = 1.0
    return v


def normalize(weights) -> np.ndarray:
    """Non-negative weights -> probability vector.

    A sum <= 0 (all-zero weights, e.g. a freshly reset regret table) maps to
    the uniform distribution rather than dividing by zero.
    """
    w = np.asarray(weights, dtype=np.float64)
    s = w.sum()
    if not s > 0:
        return uniform(len(w))
    return w / s


def expected_payoff(matrix: np.ndarray, opponent: np.ndarray) -> np.ndarray:
    """u[i] = sum_j M[i, j] * opp[j], one entry per own action."""
    return np.asarray(matrix, dtype=np.float64) @ np.asarray(opponent, dtype=np.float64)


def softmax(u: np.ndarray, tau: float = 1.0) -> np.ndarray:
    t = max(1e-4, tau)
    exps = np.exp((u - np.max(u)) / t)
    s = exps.sum()
    return exps / (s if s else 1.0)


def sample_action(strategy, rng: Mulberry32) -> int:
    """Inverse-CDF draw using exactly one PRNG value.

    Falls back to the last index when rounding leaves the cumulative sum
    just below the draw.
    """
    r = rng.random()
    acc = 0.0
    for i, p in enumerate(strategy):
        acc += float(p)
        if r <= acc:
            return i
    return len(strategy) - 1
