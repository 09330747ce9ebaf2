"""
Payoff matrices for the repeated two-player games.

Payoff for the row player A (row = A's action, col = B's action):

    rps      R    P    S          mp     H    T          pd     C    D
      R  [ 0,  -1,  +1]             H [+1,  -1]            C [ 3,   0]
      P  [+1,   0,  -1]             T [-1,  +1]            D [ 5,   1]
      S  [-1,  +1,   0]

B's matrices are indexed the same way (A's action, B's action). RPS and
Matching Pennies are zero-sum (B = -A); the Prisoner's Dilemma is not.

The numeric values and action ordering are part of the reproducibility
contract: a seeded run replays exactly only against these matrices.
"""
from dataclasses import dataclass
from typing import Dict, Tuple
import numpy as np

from config import ConfigError


def _frozen(rows) -> np.ndarray:
    arr = np.array(rows, dtype=np.float64)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class GameSpec:
    id: str
    actions_a: Tuple[str, ...]
    actions_b: Tuple[str, ...]
    payoff_a: np.ndarray  # (n_actions_a, n_actions_b)
    payoff_b: np.ndarray  # (n_actions_a, n_actions_b)
    zero_sum: bool

    @property
    def n_actions_a(self) -> int:
        return len(self.actions_a)

    @property
    def n_actions_b(self) -> int:
        return len(self.actions_b)

    @property
    def payoff_b_rows(self) -> np.ndarray:
        """B's payoff with B's own actions on the rows (payoff_b transposed)."""
        return self.payoff_b.T

    def payoffs(self, a: int, b: int) -> Tuple[float, float]:
        """Realized rewards (A, B) for the joint action (a, b)."""
        return float(self.payoff_a[a, b]), float(self.payoff_b[a, b])


GAMES: Dict[str, GameSpec] = {
    "rps": GameSpec(
        id="rps",
        actions_a=("R", "P", "S"),
        actions_b=("R", "P", "S"),
        payoff_a=_frozen([[0, -1, 1], [1, 0, -1], [-1, 1, 0]]),
        payoff_b=_frozen([[0, 1, -1], [-1, 0, 1], [1, -1, 0]]),
        zero_sum=True,
    ),
    "mp": GameSpec(
        id="mp",
        actions_a=("H", "T"),
        actions_b=("H", "T"),
        payoff_a=_frozen([[1, -1], [-1, 1]]),
        payoff_b=_frozen([[-1, 1], [1, -1]]),
        zero_sum=True,
    ),
    "pd": GameSpec(
        id="pd",
        actions_a=("C", "D"),
        actions_b=("C", "D"),
        payoff_a=_frozen([[3, 0], [5, 1]]),
        payoff_b=_frozen([[3, 5], [0, 1]]),
        zero_sum=False,
    ),
}

COOPERATE = 0  # action index of "C" in the Prisoner's Dilemma


def get_game(game_id: str) -> GameSpec:
    try:
        return GAMES[game_id]
    except KeyError:
        raise ConfigError(f"Unknown game: {game_id!r}") from None


def exploitability(payoff: np.ndarray, action_probs: np.ndarray) -> float:
    """Best-response payoff against a mixed strategy.

    `payoff` is the responder's matrix with the responder's actions on the
    rows (pass `game.payoff_a` to exploit B, `game.payoff_b_rows` to exploit A).
    At the RPS Nash (1/3, 1/3, 1/3) this is 0; at a pure strategy it is 1.
    """
    br_payoffs = payoff @ action_probs
    return float(np.max(br_payoffs))


def action_entropy(action_probs: np.ndarray) -> float:
    """Shannon entropy of the action distribution. Max = log(n) at uniform."""
    p = np.clip(action_probs, 1e-10, 1.0)
    return float(-np.sum(p * np.log(p)))
