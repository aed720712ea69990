"""Multi-layer D-LinOSS block.

A block chains ``num_layers`` D-LinOSS layers. The first maps the input
dimension p to the output dimension q; every later layer maps q to q. When
layer normalisation is enabled, the final output is normalised over its
feature axis.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np

from dlinoss.layer import DLinossConfig, DLinossLayer, LayerNorm

__all__ = ["DLinossBlockConfig", "DLinossBlock"]

_STABILITY_THRESHOLD = 0.99


@dataclass
class DLinossBlockConfig:
    """Hyper-parameters of a D-LinOSS block.

    ``dropout`` is kept for configuration compatibility; the block does not
    apply it.
    """

    d_input: int
    d_oscillators: int
    d_output: int
    num_layers: int = 1
    delta_t: float = 0.1
    init_std: float = 0.02
    layer_norm: bool = True
    dropout: float = 0.1

    def with_layers(self, num_layers: int) -> "DLinossBlockConfig":
        """Return a copy of this configuration with ``num_layers`` layers."""
        return replace(self, num_layers=num_layers)


class DLinossBlock:
    """A stack of D-LinOSS layers mapping ``[batch, seq, p]`` to ``[batch, seq, q]``."""

    def __init__(self, config: DLinossBlockConfig, rng=None) -> None:
        rng = np.random.default_rng(rng)
        self.config = config
        self.layers = [
            DLinossLayer(
                DLinossConfig(
                    d_input=config.d_input if index == 0 else config.d_output,
                    d_oscillators=config.d_oscillators,
                    d_output=config.d_output,
                    delta_t=config.delta_t,
                    init_std=config.init_std,
                    layer_norm=config.layer_norm,
                ),
                rng,
            )
            for index in range(config.num_layers)
        ]
        self.output_norm = LayerNorm(config.d_output) if config.layer_norm else None

    @property
    def num_layers(self) -> int:
        return len(self.layers)

    def forward(self, inputs: np.ndarray) -> np.ndarray:
        """Pass the sequence through every layer, then normalise the output."""
        x = np.asarray(inputs, dtype=float)
        for layer in self.layers:
            x = layer.forward(x)
        if self.output_norm is not None:
            x = self.output_norm.forward(x)
        return x

    def check_stability(self) -> list[np.ndarray]:
        """Per-layer arrays of per-oscillator stability flags."""
        return [layer.check_stability() for layer in self.layers]

    def eigenvalues(self) -> list[np.ndarray]:
        """Per-layer oscillator frequencies used for spectral monitoring."""
        return [layer.eigenvalues() for layer in self.layers]

    def update_discretized_matrices(self) -> None:
        """Recompute the discretised matrices of every layer."""
        for layer in self.layers:
            layer.update_discretized_matrices()

    def spectral_radius(self) -> list[float]:
        """Largest eigenvalue magnitude of each layer."""
        return [float(np.max(np.abs(values))) for values in self.eigenvalues()]

    def verify_paper_stability(self) -> bool:
        """True when, in every layer, nearly all oscillators meet the condition."""
        return all(
            float(np.mean(flags)) >= _STABILITY_THRESHOLD
            for flags in self.check_stability()
        )