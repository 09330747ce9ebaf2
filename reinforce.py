"""
Two-layer tanh policy with softmax output and analytic REINFORCE gradients.

No autograd framework: forward() keeps the hidden activation and the
action probabilities, and reinforce_update() backpropagates the
policy-gradient signal through them by hand.

    h = tanh(W1 @ x + b1), logits = W2 @ h + b2, pi = softmax(logits)
"""
from typing import List, Tuple
import numpy as np

from prng import Mulberry32


class TanhSoftmaxPolicy:
    """Policy network owned by exactly one player in one training run."""

    def __init__(self, obs_dim: int, hidden: int, act_dim: int, rng: Mulberry32):
        self.obs_dim = obs_dim
        self.act_dim = act_dim
        self.hidden = hidden

        # Row-major draws, W1 before W2, so initialisation is fixed by the seed.
        scale1 = 1.0 / np.sqrt(obs_dim)
        scale2 = 1.0 / np.sqrt(hidden)
        self.W1 = np.array([[rng.randn() * scale1 for _ in range(obs_dim)] for _ in range(hidden)])
        self.b1 = np.zeros(hidden)
        self.W2 = np.array([[rng.randn() * scale2 for _ in range(hidden)] for _ in range(act_dim)])
        self.b2 = np.zeros(act_dim)

    def forward(self, obs: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Single observation (obs_dim,) -> (hidden activation, action probabilities)."""
        h = np.tanh(self.W1 @ obs + self.b1)
        logits = self.W2 @ h + self.b2

        # Stable softmax
        exp_logits = np.exp(logits - logits.max())
        probs = exp_logits / exp_logits.sum()
        return h, probs

    def action_probs(self, obs: np.ndarray) -> np.ndarray:
        _, probs = self.forward(obs)
        return probs

    def gradients(self, obs: np.ndarray, hidden: np.ndarray, probs: np.ndarray,
                  actions: np.ndarray, advantages: np.ndarray) -> dict:
        """Summed REINFORCE gradients over a batch of recorded steps.

        Args:
            obs: (batch, obs_dim)
            hidden: (batch, hidden) tanh activations from forward()
            probs: (batch, act_dim)
            actions: (batch,) int
            advantages: (batch,) reward minus baseline

        Returns:
            grads: dict with keys W1, b1, W2, b2
        """
        batch = len(actions)

        # d log pi(a|x) / d logits = one_hot(a) - pi
        one_hot = np.zeros_like(probs)
        one_hot[np.arange(batch), actions] = 1.0
        d_logits = (one_hot - probs) * advantages[:, None]  # (batch, act_dim)

        dW2 = d_logits.T @ hidden  # (act_dim, hidden)
        db2 = d_logits.sum(axis=0)

        # Backprop through tanh
        d_h = (d_logits @ self.W2) * (1.0 - hidden * hidden)  # (batch, hidden)

        dW1 = d_h.T @ obs  # (hidden, obs_dim)
        db1 = d_h.sum(axis=0)

        return {"W1": dW1, "b1": db1, "W2": dW2, "b2": db2}

    def reinforce_update(self, obs, hidden, probs, actions, rewards, lr: float):
        """One gradient-ascent step with the batch mean reward as baseline."""
        rewards = np.asarray(rewards, dtype=np.float64)
        advantages = rewards - rewards.mean()
        grads = self.gradients(np.asarray(obs), np.asarray(hidden), np.asarray(probs),
                               np.asarray(actions, dtype=np.int64), advantages)
        scale = lr / len(rewards)
        self.W2 += scale * grads["W2"]
        self.b2 += scale * grads["b2"]
        self.W1 += scale * grads["W1"]
        self.b1 += scale * grads["b1"]

    def get_params(self) -> List[np.ndarray]:
        return [self.W1, self.b1, self.W2, self.b2]

    def to_dict(self) -> dict:
        return {"W1": self.W1.tolist(), "b1": self.b1.tolist(),
                "W2": self.W2.tolist(), "b2": self.b2.tolist()}

