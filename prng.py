"""
Seedable mulberry32 generator.

All stochastic choices (action sampling, policy initialisation) draw from
this stream so a run is reproducible bit-for-bit from its seed. The mixing
is done on 32-bit unsigned integers:

    t = (t + 0x6D2B79F5) mod 2^32
    x = imul(t ^ (t >> 15), 1 | t)
    x ^= x + imul(x ^ (x >> 7), 61 | x)
    out = (x ^ (x >> 14)) / 2^32

where imul is wrapping 32-bit multiplication.
"""
import math


MASK32 = 0xFFFFFFFF
GOLDEN = 0x6D2B79F5
TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK32


class Mulberry32:
    """Reproducible float stream in [0, 1). One instance per call sequence."""

    def __init__(self, seed: int = 0):
        self.seed = seed & MASK32
        self._t = self.seed

    def reset(self):
        """Rewind to the first draw of the seed."""
        self._t = self.seed

    def random(self) -> float:
        self._t = (self._t + GOLDEN) & MASK32
        t = self._t
        x = _imul(t ^ (t >> 15), 1 | t)
        x ^= (x + _imul(x ^ (x >> 7), 61 | x)) & MASK32
        return ((x ^ (x >> 14)) & MASK32) / TWO_POW_32

    def randn(self) -> float:
        """Standard normal via Box-Muller (two uniform draws)."""
        u = 1.0 - self.random()  # (0, 1], keeps log finite
        v = self.random()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)

    def __call__(self) -> float:
        return self.random()
