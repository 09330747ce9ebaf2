"""
Online-learning update rules for repeated matrix games.

A stepper owns one player's learning state inside one run. Each call to
step() takes the opponent's current mixed strategy and this player's payoff
matrix (own actions on the rows) and returns a fresh next strategy.
"""
from typing import Optional
import numpy as np

from config import check_alg
from strategy import expected_payoff, normalize, softmax, uniform


DEFAULT_LR = 0.5
REGRET_EPS = 1e-12
FP_MIN_LR = 1e-3


class Stepper:
    """Base class: `strategy` is the most recently returned mixed strategy."""

    def __init__(self, n_actions: int):
        self.n_actions = n_actions
        self.strategy = uniform(n_actions)

    def step(self, opponent: np.ndarray, payoff: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class HedgeStepper(Stepper):
    """Multiplicative weights: w_i <- w_i * exp((lr / s) * u_i), s = max(1, max|u|).

    Weights are kept as logs so any positive lr stays finite.
    """

    def __init__(self, n_actions: int, lr: float = DEFAULT_LR):
        super().__init__(n_actions)
        self.lr = lr
        self.log_weights = np.zeros(n_actions)

    @property
    def weights(self) -> np.ndarray:
        """Weights scaled so the largest is 1."""
        return np.exp(self.log_weights - np.max(self.log_weights))

    def step(self, opponent, payoff):
        u = expected_payoff(payoff, opponent)
        s = max(1.0, float(np.max(np.abs(u))))
        self.log_weights = self.log_weights + (self.lr / s) * u
        self.log_weights -= np.max(self.log_weights)
        self.strategy = normalize(self.weights)
        return self.strategy.copy()


class RegretMatchingStepper(Stepper):
    """Play proportionally to cumulative positive regret, uniform when there is none."""

    def __init__(self, n_actions: int, lr: Optional[float] = None):
        super().__init__(n_actions)
        self.regrets = np.zeros(n_actions)

    def step(self, opponent, payoff):
        u = expected_payoff(payoff, opponent)
        u_bar = float(self.strategy @ u)
        self.regrets = np.maximum(0.0, self.regrets + (u - u_bar))
        total = float(self.regrets.sum())
        if total <= REGRET_EPS:
            self.strategy = uniform(self.n_actions)
        else:
            self.strategy = self.regrets / total
        return self.strategy.copy()


class FictitiousPlayStepper(Stepper):
    """Soft best response to the opponent's empirical mean strategy.

    Temperature is 1 / max(lr, 1e-3), so a larger lr gives a sharper
    response.
    """

    def __init__(self, n_actions: int, lr: float = DEFAULT_LR):
        super().__init__(n_actions)
        self.lr = lr
        self.tau = 1.0 / max(lr, FP_MIN_LR)
        self.opponent_sum = None
        self.t = 0

    @property
    def empirical_frequency(self) -> Optional[np.ndarray]:
        if self.opponent_sum is None or self.t == 0:
            return None
        return self.opponent_sum / self.t

    def step(self, opponent, payoff):
        opponent = np.asarray(opponent, dtype=np.float64)
        if self.opponent_sum is None or len(self.opponent_sum) != len(opponent):
            self.opponent_sum = np.zeros(len(opponent))
        self.t += 1
        self.opponent_sum = self.opponent_sum + opponent
        q = self.opponent_sum / self.t
        self.strategy = softmax(expected_payoff(payoff, q), self.tau)
        return self.strategy.copy()


STEPPERS = {
    "hedge": HedgeStepper,
    "regret": RegretMatchingStepper,
    "fp": FictitiousPlayStepper,
}


def make_stepper(alg: str, n_actions: int, lr: Optional[float] = None) -> Stepper:
    """Build a fresh stepper; lr=None uses the 0.5 default."""
    cls = STEPPERS[check_alg(alg)]
    return cls(n_actions, DEFAULT_LR if lr is None else lr)
