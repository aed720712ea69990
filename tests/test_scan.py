import numpy as np
import pytest

from dlinoss.layer import DLinossConfig, DLinossLayer
from dlinoss.scan import (
    associative_scan,
    matrix_powers,
    ssm_scan,
    time_invariant_scan,
)


def _random_system(rng, n=4, p=3):
    m = rng.normal(0.0, 0.4, size=(n, n))
    f = rng.normal(0.0, 1.0, size=(n, p))
    return m, f


def test_associative_scan_keeps_shapes():
    rng = np.random.default_rng(1)
    m = rng.normal(size=(7, 3, 3))
    f = rng.normal(size=(7, 3, 2))
    m_out, f_out = associative_scan(m, f)
    assert m_out.shape == m.shape
    assert f_out.shape == f.shape


def test_associative_scan_single_step_is_identity():
    rng = np.random.default_rng(2)
    m = rng.normal(size=(1, 3, 3))
    f = rng.normal(size=(1, 3, 2))
    m_out, f_out = associative_scan(m, f)
    np.testing.assert_allclose(m_out, m)
    np.testing.assert_allclose(f_out, f)


def test_associative_scan_with_identity_transitions_sums_inputs():
    rng = np.random.default_rng(3)
    seq_len = 9
    m = np.broadcast_to(np.eye(3), (seq_len, 3, 3))
    f = rng.normal(size=(seq_len, 3, 2))
    m_out, f_out = associative_scan(m, f)
    np.testing.assert_allclose(f_out, np.cumsum(f, axis=0))
    np.testing.assert_allclose(m_out, np.broadcast_to(np.eye(3), m_out.shape))


def test_associative_scan_products_match_matrix_powers():
    rng = np.random.default_rng(4)
    base = rng.normal(0.0, 0.5, size=(3, 3))
    seq_len = 6
    m = np.broadcast_to(base, (seq_len, 3, 3))
    f = np.zeros((seq_len, 3, 1))
    m_out, _ = associative_scan(m, f)
    for k, power in enumerate(matrix_powers(base, seq_len)):
        np.testing.assert_allclose(m_out[k], power, atol=1e-12)


def test_associative_scan_rejects_mismatched_shapes():
    with pytest.raises(ValueError):
        associative_scan(np.zeros((3, 2, 2)), np.zeros((4, 2, 1)))


def test_ssm_scan_zero_input_propagates_initial_state():
    rng = np.random.default_rng(5)
    m, f = _random_system(rng)
    w0 = rng.normal(size=(2, 4))
    inputs = np.zeros((2, 5, 3))
    states = ssm_scan(m, f, inputs, w0)
    assert states.shape == (2, 5, 4)
    for k, power in enumerate(matrix_powers(m, 5)):
        np.testing.assert_allclose(states[:, k, :], w0 @ power.T, atol=1e-12)


def test_ssm_scan_first_state():
    rng = np.random.default_rng(6)
    m, f = _random_system(rng)
    w0 = rng.normal(size=(3, 4))
    inputs = rng.normal(size=(3, 4, 3))
    states = ssm_scan(m, f, inputs, w0)
    np.testing.assert_allclose(states[:, 0, :], w0 @ m.T + inputs[:, 0, :] @ f.T)


def test_ssm_scan_is_linear_in_inputs():
    rng = np.random.default_rng(7)
    m, f = _random_system(rng)
    zero = np.zeros((2, 4))
    u1 = rng.normal(size=(2, 11, 3))
    u2 = rng.normal(size=(2, 11, 3))
    combined = ssm_scan(m, f, u1 + u2, zero)
    separate = ssm_scan(m, f, u1, zero) + ssm_scan(m, f, u2, zero)
    np.testing.assert_allclose(combined, separate, atol=1e-10)


def test_ssm_scan_rejects_bad_f_matrix():
    with pytest.raises(ValueError):
        ssm_scan(np.eye(4), np.zeros((4, 2)), np.zeros((1, 3, 3)), np.zeros((1, 4)))


def test_ssm_scan_rejects_bad_initial_state():
    with pytest.raises(ValueError):
        ssm_scan(np.eye(4), np.zeros((4, 3)), np.zeros((2, 3, 3)), np.zeros((1, 4)))


def test_time_invariant_scan_defaults_to_zero_state():
    rng = np.random.default_rng(8)
    m, f = _random_system(rng)
    inputs = rng.normal(size=(2, 6, 3))
    np.testing.assert_allclose(
        time_invariant_scan(m, f, inputs),
        time_invariant_scan(m, f, inputs, np.zeros((2, 4))),
    )


def test_time_invariant_scan_rejects_empty_sequence():
    with pytest.raises(ValueError):
        time_invariant_scan(np.eye(2), np.zeros((2, 1)), np.zeros((1, 0, 1)))


def test_time_invariant_scan_reproduces_layer_forward():
    layer = DLinossLayer(DLinossConfig(3, 4, 2, layer_norm=False), rng=0)
    inputs = np.random.default_rng(9).normal(size=(2, 13, 3))
    states = time_invariant_scan(layer.m_matrix, layer.f_matrix, inputs)
    outputs = states @ layer.h_matrix.T + inputs @ layer.d.T
    np.testing.assert_allclose(outputs, layer.forward(inputs), atol=1e-10)


def test_matrix_powers_of_diagonal():
    powers = matrix_powers(np.diag([2.0, 3.0]), 4)
    assert len(powers) == 4
    for k, power in enumerate(powers, start=1):
        np.testing.assert_allclose(power, np.diag([2.0**k, 3.0**k]))


def test_matrix_powers_always_contains_first_power():
    base = np.array([[0.0, 1.0], [1.0, 0.0]])
    powers = matrix_powers(base, 0)
    assert len(powers) == 1
    np.testing.assert_allclose(powers[0], base)


def test_matrix_powers_rejects_non_square():
    with pytest.raises(ValueError):
        matrix_powers(np.zeros((2, 3)), 2)