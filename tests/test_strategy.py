import numpy as np
import pytest

from prng import Mulberry32
from strategy import expected_payoff, normalize, sample_action, softmax


@pytest.mark.parametrize("weights", [[1, 2, 3], [0.0, 5.0], [1e-300, 1e-300, 1e-300], [7.0]])
def test_normalize_is_distribution(weights):
    p = normalize(weights)
    assert np.all(p >= 0)
    assert abs(p.sum() - 1.0) < 1e-9


@pytest.mark.parametrize("n", [1, 2, 3, 5])
def test_normalize_zero_weights_is_uniform(n):
    p = normalize(np.zeros(n))
    assert np.array_equal(p, np.full(n, 1.0 / n))
    assert np.all(np.isfinite(p))


def test_expected_payoff():
    M = np.array([[0, -1, 1], [1, 0, -1], [-1, 1, 0]], dtype=float)
    u = expected_payoff(M, np.array([1.0, 0.0, 0.0]))
    np.testing.assert_array_equal(u, [0.0, 1.0, -1.0])


@pytest.mark.parametrize("seed", range(20))
@pytest.mark.parametrize("idx", [0, 1, 2])
def test_sample_one_hot_always_returns_that_index(seed, idx):
    rng = Mulberry32(seed)
    p = np.zeros(3)
    p[idx] = 1.0
    assert all(sample_action(p, rng) == idx for _ in range(50))


def test_sample_falls_back_to_last_index():
    class AlmostOne:
        def random(self):
            return 0.9999999

    assert sample_action([0.3, 0.3, 0.3], AlmostOne()) == 2


def test_sample_uses_one_draw():
    a = Mulberry32(11)
    b = Mulberry32(11)
    sample_action([0.2, 0.3, 0.5], a)
    b.random()
    assert a.random() == b.random()


def test_softmax_low_temperature_is_sharp():
    p = softmax(np.array([1.0, 0.0, 0.0]), tau=0.01)
    assert p[0] > 0.999
    assert abs(p.sum() - 1.0) < 1e-12
