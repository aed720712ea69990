# dlinoss

Damped linear oscillatory state-space models (D-LinOSS) built on NumPy.

Each layer models a bank of damped harmonic oscillators:

    x''(t) = -A x(t) - G x'(t) + B u(t),    y(t) = C x(t) + D u(t)

The model is discretised with an implicit-explicit Euler step, which treats
the damping term implicitly. The result is the recurrence
`w_k = M w_{k-1} + F u_k`, `y_k = H w_k + D u_k`, where the state `w = [z; x]`
stacks the oscillator velocities and positions. For every layer you can check
the per-oscillator stability condition `(G_i - Δt A_i)² ≤ 4 A_i`.

All computation uses float64 NumPy arrays. Every constructor that draws
random values takes an optional `rng` argument. It accepts anything that
`numpy.random.default_rng` accepts, such as a seed or a `Generator`.

## Installation

    pip install .

To run the tests, install the test extra and run pytest:

    pip install .[test]
    pytest

## Contents

- `dlinoss.layer`
  - `DLinossConfig` holds `d_input`, `d_oscillators`, `d_output`, `delta_t`
    (default 0.1), `init_std` (0.02) and `layer_norm` (True).
  - `DLinossLayer` maps inputs of shape `[batch, seq, p]` to outputs of shape
    `[batch, seq, q]`. Its methods are `forward`, `check_stability`,
    `eigenvalues` and `update_discretized_matrices`. `eigenvalues` returns
    `sqrt(A)`, the natural frequencies of the oscillators, for monitoring.
  - `LayerNorm` normalises over the last axis.
  - `compute_discretized_matrices(a, g, b, c, delta_t)` returns the discrete
    `(M, F, H)` matrices.
- `dlinoss.block`
  - `DLinossBlockConfig` is a layer configuration with two extra fields,
    `num_layers` and `dropout`. The block keeps `dropout` in its
    configuration but does not apply it. `with_layers(n)` returns a copy of
    the configuration with `n` layers.
  - `DLinossBlock` runs the layers in sequence. When `layer_norm` is set, it
    normalises the final output. It provides per-layer `check_stability`,
    `eigenvalues`, `spectral_radius` and `update_discretized_matrices`.
    `verify_paper_stability()` is true when at least 99% of the oscillators
    in every layer meet the stability condition.
- `dlinoss.model`
  - `Model` is a small classifier built from `ModelConfig`. It applies two
    valid 3×3 convolutions (`Conv2d`) with ReLU, then dropout (only with
    `forward(..., training=True)`), then `adaptive_avg_pool2d` to 8×8. The
    result feeds a D-LinOSS block as a sequence of one step, and the block
    produces the class logits.
  - `forward_classification(images, targets)` takes images of shape
    `[batch, h, w]` and returns a `ClassificationOutput` holding the
    cross-entropy loss, the logits and the targets.
  - `create_model()` builds a `Model` with the default configuration.
  - `exponential_decay_benchmark(seq_len, batch_size)` generates impulse
    inputs and exponential-decay targets, both float32 with shape
    `[batch, seq_len, 1]`.
- `dlinoss.scan`
  - `associative_scan(m_matrices, f_vectors)` computes an inclusive scan of
    affine `(M, F)` operators.
  - `ssm_scan` and `time_invariant_scan` compute all states of
    `w_k = M w_{k-1} + F u_k`. `time_invariant_scan` starts from a zero
    state unless you pass an initial state.
  - `matrix_powers(M, k)` returns `[M, M², …, M^k]`.
- `dlinoss.scan_ops`
  - `associative_scan(binary_op, elements)` and
    `parallel_scan(inputs, binary_op)` are inclusive scans over any binary
    operator.
  - `parallel_scan_log_depth` reduces the elements with a pairwise tree to a
    single combined element.
  - `dlinoss_parallel_scan(m_elements, f_elements)` runs the block-diagonal
    state recurrence from a zero state.
- `dlinoss.architectures`
  - `DLinossArchitecture` is an abstract interface with `forward`, `name`,
    `param_count`, `verify_stability` and `memory_estimate`.
    `memory_estimate` counts 4 bytes per parameter.
  - `ArchitectureType` enumerates the variant names.
- `dlinoss.benchmark`
  - `ArchitectureBenchmark` times ten forward passes of an architecture on a
    shared standard-normal input and returns the results as a
    `BenchmarkResult`.
  - `generate_report(results)` formats the results as text.

## Example

```python
import numpy as np
from dlinoss.layer import DLinossConfig, DLinossLayer

rng = np.random.default_rng(0)
layer = DLinossLayer(DLinossConfig(d_input=10, d_oscillators=32, d_output=5), rng)

inputs = rng.normal(size=(4, 16, 10))
outputs = layer.forward(inputs)          # shape (4, 16, 5)
stable = layer.check_stability()         # 1.0 where an oscillator is stable
```

A multi-layer block:

```python
from dlinoss.block import DLinossBlock, DLinossBlockConfig

config = DLinossBlockConfig(d_input=16, d_oscillators=32, d_output=8).with_layers(3)
block = DLinossBlock(config, rng)
y = block.forward(rng.normal(size=(2, 30, 16)))
print(block.verify_paper_stability(), block.spectral_radius())
```

## What the package does not do

- **No training.** There are no gradients, optimisers or training loops.
  Parameters keep their random initial values unless you change them
  yourself. If you change them, call `update_discretized_matrices()`
  afterwards. `forward_classification` only computes a loss.
- **No data sets.** Nothing here loads or downloads image data.
- **No concrete architectures.** `ArchitectureType` lists variant names, but
  no class in the package implements `DLinossArchitecture`. To benchmark a
  model, write such a class yourself and pass it to
  `ArchitectureBenchmark.test_layer_only`.
- **No command-line interface.**