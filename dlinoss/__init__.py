"""Damped linear oscillatory state-space layers, blocks, a CNN classifier, scans and benchmarks."""

__version__ = "0.1.0"