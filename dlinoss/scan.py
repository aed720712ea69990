"""Scan-based evaluation of the time-invariant D-LinOSS state recurrence.

The recurrence ``w_k = M w_{k-1} + F u_k`` is a composition of affine maps.
Two maps compose associatively::

    (M1, F1) then (M2, F2)  =  (M2 M1, M2 F1 + F2)

so every prefix of the sequence can be computed with a Kogge-Stone style
scan in ``ceil(log2 T)`` vectorised rounds.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

__all__ = [
    "associative_scan",
    "ssm_scan",
    "time_invariant_scan",
    "matrix_powers",
]


def _square_matrix(matrix: np.ndarray, name: str) -> np.ndarray:
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"{name} must be a square matrix, got shape {matrix.shape}")
    return matrix


def associative_scan(
    m_matrices: np.ndarray, f_vectors: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Inclusive scan of affine operators ``(M_k, F_k)``.

    ``m_matrices`` has shape ``[T, n, n]`` and ``f_vectors`` shape
    ``[T, n, p]``. Element ``k`` of the result is the composition of
    operators ``0..k`` applied in order: ``(M_k ... M_0,
    sum_j M_k ... M_{j+1} F_j)``. The outputs have the input shapes.
    """
    m = np.asarray(m_matrices, dtype=float)
    f = np.asarray(f_vectors, dtype=float)
    if m.ndim != 3 or m.shape[1] != m.shape[2]:
        raise ValueError(f"expected [T, n, n] transition matrices, got shape {m.shape}")
    if f.ndim != 3 or f.shape[:2] != m.shape[:2]:
        raise ValueError(
            f"input terms of shape {f.shape} do not match transitions of shape {m.shape}"
        )

    seq_len = m.shape[0]
    m = m.copy()
    f = f.copy()
    step = 1
    while step < seq_len:
        m_left, f_left = m[:-step], f[:-step]
        m_right, f_right = m[step:], f[step:]
        new_m = m.copy()
        new_f = f.copy()
        new_m[step:] = m_right @ m_left
        new_f[step:] = m_right @ f_left + f_right
        m, f = new_m, new_f
        step *= 2
    return m, f


def ssm_scan(
    m_matrix: np.ndarray,
    f_matrix: np.ndarray,
    inputs: np.ndarray,
    initial_state: np.ndarray,
) -> np.ndarray:
    """All states of ``w_k = M w_{k-1} + F u_k`` starting from ``initial_state``.

    ``inputs`` has shape ``[batch, T, p]`` and ``initial_state`` shape
    ``[batch, n]``; the result has shape ``[batch, T, n]``.
    """
    m = _square_matrix(m_matrix, "M")
    f = np.asarray(f_matrix, dtype=float)
    u = np.asarray(inputs, dtype=float)
    w0 = np.asarray(initial_state, dtype=float)
    if u.ndim != 3:
        raise ValueError(f"expected a 3-D input, got shape {u.shape}")

    batch_size, seq_len, input_dim = u.shape
    state_dim = m.shape[0]
    if f.shape != (state_dim, input_dim):
        raise ValueError(
            f"F matrix of shape {f.shape} does not match "
            f"state_dim={state_dim}, input_dim={input_dim}"
        )
    if w0.shape != (batch_size, state_dim):
        raise ValueError(
            f"initial state of shape {w0.shape} does not match "
            f"batch_size={batch_size}, state_dim={state_dim}"
        )

    projected = u @ f.T
    m_seq = np.broadcast_to(m, (seq_len, state_dim, state_dim))
    f_seq = projected.transpose(1, 2, 0)
    m_acc, f_acc = associative_scan(m_seq, f_seq)
    states = m_acc @ w0.T + f_acc
    return states.transpose(2, 0, 1)


def time_invariant_scan(
    m_matrix: np.ndarray,
    f_matrix: np.ndarray,
    inputs: np.ndarray,
    initial_state: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Run :func:`ssm_scan` with a zero initial state unless one is given."""
    m = _square_matrix(m_matrix, "M")
    f = np.asarray(f_matrix, dtype=float)
    u = np.asarray(inputs, dtype=float)
    if u.ndim != 3:
        raise ValueError(f"expected a 3-D input, got shape {u.shape}")
    batch_size, seq_len, input_dim = u.shape
    state_dim = m.shape[0]
    if f.shape != (state_dim, input_dim):
        raise ValueError(
            f"F matrix of shape {f.shape} incompatible with "
            f"state_dim={state_dim}, input_dim={input_dim}"
        )
    if seq_len <= 0:
        raise ValueError(f"sequence length must be positive, got {seq_len}")
    if initial_state is None:
        initial_state = np.zeros((batch_size, state_dim))
    return ssm_scan(m, f, u, initial_state)


def matrix_powers(matrix: np.ndarray, max_power: int) -> list[np.ndarray]:
    """Return ``[M, M^2, ..., M^max_power]``; the first power is always included."""
    m = _square_matrix(matrix, "matrix")
    powers = [m.copy()]
    current = m
    for _ in range(1, max_power):
        current = current @ m
        powers.append(current)
    return powers