"""Hybrid CNN + D-LinOSS image classifier and synthetic benchmark data.

Images pass through two valid 3x3 convolutions with ReLU, dropout and an
adaptive average pool to 8x8. The flattened features are treated as a
single-step sequence and fed to a multi-layer D-LinOSS block whose output
are the class logits.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from dlinoss.block import DLinossBlock, DLinossBlockConfig

__all__ = [
    "ModelConfig",
    "Conv2d",
    "adaptive_avg_pool2d",
    "ClassificationOutput",
    "Model",
    "create_model",
    "exponential_decay_benchmark",
]

_CONV_CHANNELS = (8, 16)
_KERNEL = (3, 3)
_POOL_SIZE = (8, 8)
_DECAY_TIME_STEP = 0.1


@dataclass
class ModelConfig:
    """Hyper-parameters of the CNN + D-LinOSS classifier."""

    num_classes: int = 10
    d_oscillators: int = 64
    num_dlinoss_layers: int = 2
    dropout: float = 0.5


def _pair(value) -> tuple[int, int]:
    if isinstance(value, int):
        return value, value
    first, second = value
    return int(first), int(second)


class Conv2d:
    """Two-dimensional convolution with stride 1, no padding and a bias."""

    def __init__(self, in_channels: int, out_channels: int, kernel_size, rng=None) -> None:
        rng = np.random.default_rng(rng)
        self.in_channels = in_channels
        self.out_channels = out_channels
        self.kernel_size = _pair(kernel_size)
        kh, kw = self.kernel_size
        bound = 1.0 / np.sqrt(in_channels * kh * kw)
        self.weight = rng.uniform(-bound, bound, size=(out_channels, in_channels, kh, kw))
        self.bias = rng.uniform(-bound, bound, size=out_channels)

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Convolve ``[batch, in_channels, h, w]`` to ``[batch, out_channels, h', w']``."""
        x = np.asarray(x, dtype=float)
        if x.ndim != 4:
            raise ValueError(f"expected a 4-D input, got shape {x.shape}")
        if x.shape[1] != self.in_channels:
            raise ValueError(
                f"expected {self.in_channels} input channels, got {x.shape[1]}"
            )
        kh, kw = self.kernel_size
        if x.shape[2] < kh or x.shape[3] < kw:
            raise ValueError(
                f"input of spatial size {x.shape[2]}x{x.shape[3]} is smaller "
                f"than the {kh}x{kw} kernel"
            )
        windows = sliding_window_view(x, (kh, kw), axis=(2, 3))
        out = np.einsum("bchwij,ocij->bohw", windows, self.weight)
        return out + self.bias[None, :, None, None]

    def num_params(self) -> int:
        """Number of weights and biases."""
        return self.weight.size + self.bias.size


def _pool_bounds(size: int, out: int) -> list[tuple[int, int]]:
    return [((i * size) // out, -(-((i + 1) * size) // out)) for i in range(out)]


def adaptive_avg_pool2d(x: np.ndarray, output_size) -> np.ndarray:
    """Average-pool the last two axes of ``[batch, channels, h, w]`` to ``output_size``."""
    x = np.asarray(x, dtype=float)
    if x.ndim != 4:
        raise ValueError(f"expected a 4-D input, got shape {x.shape}")
    out_h, out_w = _pair(output_size)
    if out_h <= 0 or out_w <= 0:
        raise ValueError(f"output size must be positive, got {(out_h, out_w)}")
    rows = _pool_bounds(x.shape[2], out_h)
    cols = _pool_bounds(x.shape[3], out_w)
    return np.stack(
        [
            np.stack(
                [x[:, :, r0:r1, c0:c1].mean(axis=(2, 3)) for c0, c1 in cols],
                axis=-1,
            )
            for r0, r1 in rows
        ],
        axis=-2,
    )


@dataclass
class ClassificationOutput:
    """Loss, logits and targets of one classification pass."""

    loss: float
    output: np.ndarray
    targets: np.ndarray


def _cross_entropy(logits: np.ndarray, targets: np.ndarray) -> float:
    shifted = logits - logits.max(axis=1, keepdims=True)
    log_probs = shifted - np.log(np.exp(shifted).sum(axis=1, keepdims=True))
    picked = log_probs[np.arange(len(targets)), targets]
    return float(-picked.mean())


class Model:
    """CNN feature extractor followed by a D-LinOSS block producing class logits."""

    def __init__(self, config: ModelConfig, rng=None) -> None:
        rng = np.random.default_rng(rng)
        self.config = config
        out1, out2 = _CONV_CHANNELS
        self.conv1 = Conv2d(1, out1, _KERNEL, rng)
        self.conv2 = Conv2d(out1, out2, _KERNEL, rng)
        self.dropout = config.dropout
        self._rng = rng

        cnn_features = out2 * _POOL_SIZE[0] * _POOL_SIZE[1]
        block_config = DLinossBlockConfig(
            d_input=cnn_features,
            d_oscillators=config.d_oscillators,
            d_output=config.num_classes,
        ).with_layers(config.num_dlinoss_layers)
        self.dlinoss_block = DLinossBlock(block_config, rng)

        self._params = (
            self.conv1.num_params()
            + self.conv2.num_params()
            + config.d_oscillators * 2 * 5
            + config.num_classes * config.d_oscillators
            + config.num_classes * cnn_features
        )

    def _apply_dropout(self, x: np.ndarray) -> np.ndarray:
        if self.dropout <= 0.0:
            return x
        keep = 1.0 - self.dropout
        mask = self._rng.random(x.shape) < keep
        return np.where(mask, x / keep, 0.0)

    def forward(self, images: np.ndarray, training: bool = False) -> np.ndarray:
        """Classify ``[batch, 1, h, w]`` images into ``[batch, num_classes]`` logits.

        Dropout is applied only when ``training`` is true.
        """
        images = np.asarray(images, dtype=float)
        if images.ndim != 4:
            raise ValueError(f"expected a 4-D image batch, got shape {images.shape}")
        batch_size = images.shape[0]

        x = np.maximum(self.conv1.forward(images), 0.0)
        x = np.maximum(self.conv2.forward(x), 0.0)
        if training:
            x = self._apply_dropout(x)
        x = adaptive_avg_pool2d(x, _POOL_SIZE)

        x = x.reshape(batch_size, 1, -1)
        x = self.dlinoss_block.forward(x)
        return x[:, 0, :]

    def num_params(self) -> int:
        """Approximate number of trainable parameters."""
        return self._params

    def verify_stability(self) -> bool:
        """Whether every D-LinOSS layer meets the discretisation stability condition."""
        return self.dlinoss_block.verify_paper_stability()

    def spectral_analysis(self) -> list[float]:
        """Spectral radius of each D-LinOSS layer."""
        return self.dlinoss_block.spectral_radius()

    def update_dlinoss_matrices(self) -> None:
        """Recompute the discretised matrices of all D-LinOSS layers."""
        self.dlinoss_block.update_discretized_matrices()

    def forward_classification(self, images: np.ndarray, targets) -> ClassificationOutput:
        """Classify ``[batch, h, w]`` images and score them with cross-entropy."""
        images = np.asarray(images, dtype=float)
        if images.ndim != 3:
            raise ValueError(f"expected a 3-D image batch, got shape {images.shape}")
        targets = np.asarray(targets, dtype=np.int64)
        batch_size, height, width = images.shape
        if targets.shape != (batch_size,):
            raise ValueError(
                f"expected {batch_size} targets, got shape {targets.shape}"
            )
        if targets.size and (targets.min() < 0 or targets.max() >= self.config.num_classes):
            raise ValueError("target class out of range")
        output = self.forward(images.reshape(batch_size, 1, height, width))
        loss = _cross_entropy(output, targets)
        return ClassificationOutput(loss=loss, output=output, targets=targets)


def create_model(rng=None) -> Model:
    """Build a model with the default configuration."""
    return Model(ModelConfig(), rng)


def exponential_decay_benchmark(seq_len: int, batch_size: int, rng=None) -> tuple[np.ndarray, np.ndarray]:
    """Generate impulse inputs and exponential-decay targets.

    Each sequence draws a decay rate in [0.1, 0.9] and an amplitude in
    [-1, 1]; the input is the amplitude at t=0 and zero afterwards, the target
    is ``amplitude * exp(-rate * 0.1 t)``. Both have shape
    ``[batch_size, seq_len, 1]`` and dtype float32.
    """
    rng = np.random.default_rng(rng)
    draws = rng.random((batch_size, 2))
    decay_rate = 0.1 + draws[:, 0] * 0.8
    initial = draws[:, 1] * 2.0 - 1.0

    times = np.arange(seq_len) * _DECAY_TIME_STEP
    targets = initial[:, None] * np.exp(-decay_rate[:, None] * times[None, :])
    inputs = np.zeros((batch_size, seq_len))
    if seq_len > 0:
        inputs[:, 0] = initial

    return (
        inputs[..., None].astype(np.float32),
        targets[..., None].astype(np.float32),
    )