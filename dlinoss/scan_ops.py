"""Generic scan helpers and the block-diagonal D-LinOSS state scan."""

from __future__ import annotations

from itertools import accumulate
from typing import Callable, Sequence, TypeVar

import numpy as np

__all__ = [
    "associative_scan",
    "dlinoss_parallel_scan",
    "parallel_scan_log_depth",
    "parallel_scan",
]

T = TypeVar("T")


def associative_scan(binary_op: Callable[[T, T], T], elements: Sequence[T]) -> list[T]:
    """Inclusive scan: element ``i`` is ``op(...op(e0, e1)..., ei)``."""
    return list(accumulate(elements, binary_op))


def _transition(
    state: np.ndarray, m_t: np.ndarray, f_t: np.ndarray, ssm_size: int
) -> np.ndarray:
    n = ssm_size
    m_a, m_b, m_c, m_d = m_t[:n], m_t[n : 2 * n], m_t[2 * n : 3 * n], m_t[3 * n : 4 * n]
    real, imag = state[:, :n], state[:, n : 2 * n]
    in_real, in_imag = f_t[:, :n], f_t[:, n : 2 * n]
    new_real = real * m_a - imag * m_b + in_real
    new_imag = real * m_c + imag * m_d + in_imag
    return np.concatenate([new_real, new_imag], axis=1)


def dlinoss_parallel_scan(m_elements: np.ndarray, f_elements: np.ndarray) -> np.ndarray:
    """States of the block-diagonal recurrence from a zero initial state.

    ``m_elements`` has shape ``[T, 4n]`` holding the diagonal blocks
    ``[A | B | C | D]`` of each step's transition; ``f_elements`` has shape
    ``[batch, T, 2n]``. With the state split into halves ``(r, i)``::

        r' = A r - B i + f_r
        i' = C r + D i + f_i

    The result has shape ``[batch, T, 2n]``.
    """
    m = np.asarray(m_elements, dtype=float)
    f = np.asarray(f_elements, dtype=float)
    if m.ndim != 2:
        raise ValueError(f"expected [T, 4n] transition elements, got shape {m.shape}")
    if f.ndim != 3:
        raise ValueError(f"expected [batch, T, 2n] input projections, got shape {f.shape}")
    seq_len, matrix_size = m.shape
    batch_size, f_len, state_size = f.shape
    if state_size % 2:
        raise ValueError(f"state size must be even, got {state_size}")
    ssm_size = state_size // 2
    if matrix_size < 4 * ssm_size:
        raise ValueError(
            f"transition elements of width {matrix_size} are too narrow "
            f"for state size {state_size}"
        )
    if f_len < seq_len:
        raise ValueError(
            f"input projections cover {f_len} steps but transitions cover {seq_len}"
        )

    state = np.zeros((batch_size, state_size))
    states = []
    for t, m_t in enumerate(m):
        state = _transition(state, m_t, f[:, t, :], ssm_size)
        states.append(state)
    if not states:
        return np.zeros((batch_size, 0, state_size))
    return np.stack(states, axis=1)


def parallel_scan_log_depth(
    binary_op: Callable[[T, T], T], elements: Sequence[T]
) -> list[T]:
    """Pairwise tree reduction of ``elements``.

    Sequences of length zero or one come back unchanged; otherwise the result
    is a one-element list holding the combination of all elements in order.
    """
    level = list(elements)
    if len(level) <= 1:
        return level
    while len(level) > 1:
        pairs = zip(level[0::2], level[1::2])
        reduced = [binary_op(left, right) for left, right in pairs]
        if len(level) % 2:
            reduced.append(level[-1])
        level = reduced
    return level


def parallel_scan(inputs: Sequence[T], binary_op: Callable[[T, T], T]) -> list[T]:
    """Inclusive scan of ``inputs`` with ``binary_op``; empty input gives ``[]``."""
    return list(accumulate(inputs, binary_op))