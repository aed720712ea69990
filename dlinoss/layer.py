"""Damped linear oscillatory state-space layer (D-LinOSS).

The layer models m damped harmonic oscillators driven by an input signal::

    x''(t) = -A x(t) - G x'(t) + B u(t)
    y(t)   = C x(t) + D u(t)

with diagonal frequency matrix A and diagonal, learnable damping matrix G.
The system is discretised with an implicit-explicit (IMEX) Euler scheme that
treats damping implicitly, giving the recurrence::

    w_k = M w_{k-1} + F u_k
    y_k = H w_k + D u_k

where w = [z; x] stacks oscillator velocities and positions.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

__all__ = [
    "DLinossConfig",
    "LayerNorm",
    "DLinossLayer",
    "compute_discretized_matrices",
]


@dataclass
class DLinossConfig:
    """Hyper-parameters of a single D-LinOSS layer.

    ``d_input`` is the input dimension p, ``d_oscillators`` the number of
    oscillators m (state dimension 2m) and ``d_output`` the output dimension q.
    """

    d_input: int
    d_oscillators: int
    d_output: int
    delta_t: float = 0.1
    init_std: float = 0.02
    layer_norm: bool = True


class LayerNorm:
    """Layer normalisation over the last axis with learnable scale and shift."""

    def __init__(self, dim: int, eps: float = 1e-5) -> None:
        self.dim = dim
        self.eps = eps
        self.gamma = np.ones(dim)
        self.beta = np.zeros(dim)

    def forward(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        if x.shape[-1] != self.dim:
            raise ValueError(
                f"expected last dimension {self.dim}, got {x.shape[-1]}"
            )
        mean = x.mean(axis=-1, keepdims=True)
        var = x.var(axis=-1, keepdims=True)
        normalized = (x - mean) / np.sqrt(var + self.eps)
        return normalized * self.gamma + self.beta


def compute_discretized_matrices(
    a: np.ndarray,
    g: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
    delta_t: float,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return the IMEX-discretised ``(M, F, H)`` matrices.

    With ``S = I + dt G``::

        M = [[S^-1,      -dt S^-1 A      ],
             [dt S^-1,   I - dt^2 S^-1 A ]]
        F = [[dt S^-1 B], [dt^2 S^-1 B]]
        H = [0, C]
    """
    a = np.asarray(a, dtype=float)
    g = np.asarray(g, dtype=float)
    b = np.asarray(b, dtype=float)
    c = np.asarray(c, dtype=float)
    m = a.shape[0]
    q = c.shape[0]

    s_inv = 1.0 / (1.0 + delta_t * g)
    dt2 = delta_t * delta_t

    m11 = np.diag(s_inv)
    m12 = np.diag(-delta_t * s_inv * a)
    m21 = np.diag(delta_t * s_inv)
    m22 = np.diag(1.0 - dt2 * s_inv * a)
    m_matrix = np.block([[m11, m12], [m21, m22]])

    f1 = (delta_t * s_inv)[:, None] * b
    f2 = (dt2 * s_inv)[:, None] * b
    f_matrix = np.concatenate([f1, f2], axis=0)

    h_matrix = np.concatenate([np.zeros((q, m)), c], axis=1)
    return m_matrix, f_matrix, h_matrix


class DLinossLayer:
    """A D-LinOSS layer mapping ``[batch, seq, p]`` to ``[batch, seq, q]``."""

    def __init__(self, config: DLinossConfig, rng=None) -> None:
        rng = np.random.default_rng(rng)
        m, p, q = config.d_oscillators, config.d_input, config.d_output
        self.config = config

        self.a = rng.uniform(0.1, 2.0, size=m)
        self.g = rng.uniform(0.01, 0.5, size=m)
        self.b = rng.normal(0.0, config.init_std, size=(m, p))
        self.c = rng.normal(0.0, config.init_std, size=(q, m))
        self.d = rng.normal(0.0, config.init_std * 0.1, size=(q, p))

        self.layer_norm = LayerNorm(2 * m) if config.layer_norm else None
        self.update_discretized_matrices()

    @property
    def d_input(self) -> int:
        return self.config.d_input

    @property
    def d_oscillators(self) -> int:
        return self.config.d_oscillators

    @property
    def d_output(self) -> int:
        return self.config.d_output

    @property
    def delta_t(self) -> float:
        return self.config.delta_t

    def update_discretized_matrices(self) -> None:
        """Recompute M, F and H from the current trainable parameters."""
        self.m_matrix, self.f_matrix, self.h_matrix = compute_discretized_matrices(
            self.a, self.g, self.b, self.c, self.delta_t
        )

    def forward(self, inputs: np.ndarray) -> np.ndarray:
        """Run the recurrence from a zero initial state over the sequence."""
        inputs = np.asarray(inputs, dtype=float)
        if inputs.ndim != 3:
            raise ValueError(f"expected a 3-D input, got shape {inputs.shape}")
        batch_size, seq_len, features = inputs.shape
        if features != self.d_input:
            raise ValueError(
                f"expected {self.d_input} input features, got {features}"
            )
        if seq_len == 0:
            raise ValueError("input sequence is empty")

        state = np.zeros((batch_size, 2 * self.d_oscillators))
        m_t = self.m_matrix.T
        f_t = self.f_matrix.T
        h_t = self.h_matrix.T
        direct = inputs @ self.d.T

        outputs = []
        for u_t in np.moveaxis(inputs, 1, 0):
            state = state @ m_t + u_t @ f_t
            if self.layer_norm is not None:
                state = self.layer_norm.forward(state)
            outputs.append(state @ h_t)
        return np.stack(outputs, axis=1) + direct

    def eigenvalues(self) -> np.ndarray:
        """Natural frequencies sqrt(A) of the oscillators, for monitoring."""
        return np.sqrt(self.a)

    def check_stability(self) -> np.ndarray:
        """Per-oscillator flags (1.0/0.0) for ``(G - dt A)^2 <= 4 A``."""
        left = (self.g - self.delta_t * self.a) ** 2
        right = 4.0 * self.a
        return (left <= right).astype(float)