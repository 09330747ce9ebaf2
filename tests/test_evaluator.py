import math

import numpy as np
import pytest

from config import ConfigError
from evaluator import (EvalConfig, MetricRow, generate_eval_trace, mean_std,
                       run_eval, summarize)
from sinks import JsonlSink, MemorySink


def _cfg(**kw):
    base = dict(game="rps", alg_a="hedge", alg_b="regret", seeds=[1, 2],
                episodes=3, steps_per_ep=50, lr=None)
    base.update(kw)
    return EvalConfig(**base)


@pytest.mark.parametrize("bad", [
    dict(game="chess"),
    dict(alg_a="sarsa"),
    dict(seeds=[]),
    dict(seeds=[2 ** 32]),
    dict(episodes=0),
    dict(steps_per_ep=-5),
    dict(lr=0.0),
])
def test_invalid_config_rejected(bad):
    with pytest.raises(ConfigError):
        _cfg(**bad)


@pytest.mark.parametrize("alg_a,alg_b", [("hedge", "hedge"), ("regret", "fp"), ("fp", "hedge")])
def test_identical_config_is_bit_identical(alg_a, alg_b):
    first = run_eval(_cfg(alg_a=alg_a, alg_b=alg_b))
    second = run_eval(_cfg(alg_a=alg_a, alg_b=alg_b))
    assert first.metrics == second.metrics
    assert first.summary == second.summary


def test_seed_is_restartable_on_its_own():
    both = run_eval(_cfg(seeds=[1, 2]))
    only_two = run_eval(_cfg(seeds=[2]))
    assert [r for r in both.metrics if r.seed == 2] == only_two.metrics


def test_row_order_and_count():
    result = run_eval(_cfg(seeds=[4, 9], episodes=2))
    assert [(r.seed, r.ep) for r in result.metrics] == [(4, 1), (4, 2), (9, 1), (9, 2)]


@pytest.mark.parametrize("game", ["rps", "mp"])
def test_zero_sum_metric_completeness(game):
    result = run_eval(_cfg(game=game, alg_a="fp", alg_b="hedge"))
    for row in result.metrics:
        assert row.win_a is not None and row.l2_dist is not None
        assert row.coop_rate is None
        assert row.win_a == pytest.approx((row.avg_reward_a + 1) / 2)
        assert 0.0 <= row.win_a <= 1.0
    assert result.summary.coop_rate_mean is None and result.summary.coop_rate_std is None


def test_prisoners_dilemma_metric_completeness():
    result = run_eval(_cfg(game="pd", alg_a="regret", alg_b="hedge"))
    for row in result.metrics:
        assert row.coop_rate is not None
        assert 0.0 <= row.coop_rate <= 1.0
        assert row.win_a is None and row.l2_dist is None
    assert result.summary.win_a_mean is None and result.summary.l2_dist_mean is None


def test_prisoners_dilemma_hedge_learns_to_defect():
    result = run_eval(_cfg(game="pd", alg_a="hedge", alg_b="hedge", steps_per_ep=400))
    assert result.summary.coop_rate_mean < 0.2


def test_mean_std_population():
    ms = mean_std([0.2, 0.4, 0.6])
    assert ms["mean"] == pytest.approx(0.4)
    expected = math.sqrt(((0.2 - 0.4) ** 2 + 0 + (0.6 - 0.4) ** 2) / 3)
    assert ms["std"] == pytest.approx(expected)
    assert ms["std"] == pytest.approx(0.1633, abs=1e-4)
    assert mean_std([]) == {"mean": None, "std": None}


def test_summarize_skips_nulls():
    rows = [
        MetricRow(seed=0, ep=1, win_a=None, avg_reward_a=0.2, coop_rate=0.5, l2_dist=None),
        MetricRow(seed=0, ep=2, win_a=None, avg_reward_a=0.4, coop_rate=0.5, l2_dist=None),
        MetricRow(seed=0, ep=3, win_a=None, avg_reward_a=0.6, coop_rate=0.5, l2_dist=None),
    ]
    s = summarize(rows)
    assert s.avg_reward_a_mean == pytest.approx(0.4)
    assert s.avg_reward_a_std == pytest.approx(0.16329931618554522)
    assert s.coop_rate_std == 0.0
    assert s.win_a_mean is None and s.l2_dist_std is None


def test_sink_receives_each_row_once():
    sink = MemorySink()
    result = run_eval(_cfg(), sink=sink)
    assert sink.metric_rows == result.metrics
    assert sink.summary_rows == [result.summary]


def test_jsonl_sink(tmp_path):
    import json

    run_eval(_cfg(episodes=2, seeds=[3]), sink=JsonlSink(tmp_path))
    lines = (tmp_path / "metrics.jsonl").read_text().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["ep"] == 1
    summary = json.loads((tmp_path / "summary.json").read_text())
    assert "avg_reward_a_mean" in summary


def test_trace_matches_summary_path():
    cfg = _cfg(game="pd", alg_a="fp", alg_b="regret", seeds=[8], episodes=2, steps_per_ep=30)
    trace = generate_eval_trace(cfg)
    result = run_eval(cfg)
    assert len(trace.steps) == 60
    assert trace.actions_a == ["C", "D"]
    for ep, row in enumerate(result.metrics, start=1):
        steps = [s for s in trace.steps if s.ep == ep]
        assert [s.t for s in steps] == list(range(1, 31))
        assert sum(s.reward_a for s in steps) / 30 == pytest.approx(row.avg_reward_a)
        assert sum(s.action_a == 0 for s in steps) / 30 == row.coop_rate


def test_l2_dist_zero_for_symmetric_uniform_start():
    # Hedge vs Hedge in RPS from uniform never leaves uniform
    result = run_eval(_cfg(alg_a="hedge", alg_b="hedge"))
    assert all(row.l2_dist == pytest.approx(0.0, abs=1e-12) for row in result.metrics)
