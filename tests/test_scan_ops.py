import operator

import numpy as np
import pytest

from dlinoss.scan_ops import (
    associative_scan,
    dlinoss_parallel_scan,
    parallel_scan,
    parallel_scan_log_depth,
)


def _add_pairs(a, b):
    return (a[0] + b[0], a[1] + b[1])


def test_associative_scan_basic():
    elements = [
        (np.array([1.0]), np.array([1.0])),
        (np.array([2.0]), np.array([2.0])),
        (np.array([3.0]), np.array([3.0])),
    ]
    result = associative_scan(_add_pairs, elements)
    assert len(result) == 3
    expected = [1.0, 3.0, 6.0]
    for (first, second), value in zip(result, expected):
        np.testing.assert_allclose(first, [value])
        np.testing.assert_allclose(second, [value])


def test_associative_scan_empty_and_single():
    assert associative_scan(_add_pairs, []) == []
    single = [(1, 2)]
    assert associative_scan(_add_pairs, single) == [(1, 2)]


def test_associative_scan_preserves_order():
    assert associative_scan(operator.add, ["a", "b", "c"]) == ["a", "ab", "abc"]


def test_dlinoss_parallel_scan_identity_transition_accumulates():
    rng = np.random.default_rng(0)
    n, seq_len = 3, 6
    m_row = np.concatenate([np.ones(n), np.zeros(n), np.zeros(n), np.ones(n)])
    m = np.tile(m_row, (seq_len, 1))
    f = rng.normal(size=(2, seq_len, 2 * n))
    states = dlinoss_parallel_scan(m, f)
    assert states.shape == (2, seq_len, 2 * n)
    np.testing.assert_allclose(states, np.cumsum(f, axis=1))


def test_dlinoss_parallel_scan_first_state_is_first_input():
    rng = np.random.default_rng(1)
    m = rng.normal(size=(4, 8))
    f = rng.normal(size=(3, 4, 4))
    states = dlinoss_parallel_scan(m, f)
    np.testing.assert_allclose(states[:, 0, :], f[:, 0, :])


def test_dlinoss_parallel_scan_second_step_mixes_halves():
    m_row = np.array([2.0, 3.0, 5.0, 7.0])
    m = np.tile(m_row, (2, 1))
    f = np.zeros((1, 2, 2))
    f[0, 0] = [1.0, 1.0]
    states = dlinoss_parallel_scan(m, f)
    np.testing.assert_allclose(states[0, 1], [2.0 - 3.0, 5.0 + 7.0])


def test_dlinoss_parallel_scan_zero_input_stays_zero():
    rng = np.random.default_rng(2)
    m = rng.normal(size=(5, 8))
    states = dlinoss_parallel_scan(m, np.zeros((2, 5, 4)))
    np.testing.assert_array_equal(states, np.zeros((2, 5, 4)))


def test_dlinoss_parallel_scan_rejects_odd_state():
    with pytest.raises(ValueError):
        dlinoss_parallel_scan(np.zeros((2, 12)), np.zeros((1, 2, 3)))


def test_dlinoss_parallel_scan_rejects_narrow_transitions():
    with pytest.raises(ValueError):
        dlinoss_parallel_scan(np.zeros((2, 6)), np.zeros((1, 2, 4)))


def test_dlinoss_parallel_scan_rejects_short_inputs():
    with pytest.raises(ValueError):
        dlinoss_parallel_scan(np.zeros((3, 8)), np.zeros((1, 2, 4)))


def test_parallel_scan_log_depth_reduces_to_total():
    result = parallel_scan_log_depth(operator.add, [1, 2, 3, 4, 5])
    assert result == [15]


def test_parallel_scan_log_depth_keeps_order():
    result = parallel_scan_log_depth(operator.add, ["a", "b", "c", "d", "e"])
    assert result == ["abcde"]


def test_parallel_scan_log_depth_short_inputs_unchanged():
    assert parallel_scan_log_depth(operator.add, []) == []
    assert parallel_scan_log_depth(operator.add, ["x"]) == ["x"]


def test_parallel_scan_matches_cumulative_sum():
    rng = np.random.default_rng(3)
    inputs = [rng.normal(size=(2, 3)) for _ in range(5)]
    result = parallel_scan(inputs, operator.add)
    assert len(result) == 5
    np.testing.assert_allclose(np.stack(result), np.cumsum(np.stack(inputs), axis=0))


def test_parallel_scan_empty():
    assert parallel_scan([], operator.add) == []