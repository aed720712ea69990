"""Common interface for D-LinOSS architecture variants."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

import numpy as np

__all__ = ["DLinossArchitecture", "ArchitectureType"]

_FLOAT32_BYTES = 4


class DLinossArchitecture(ABC):
    """Interface every benchmarked D-LinOSS architecture provides."""

    @abstractmethod
    def forward(self, inputs: np.ndarray) -> np.ndarray:
        """Map ``[batch, seq, features]`` inputs to a sequence output."""

    @abstractmethod
    def name(self) -> str:
        """Name used in logs and comparison reports."""

    @abstractmethod
    def param_count(self) -> int:
        """Number of trainable parameters."""

    @abstractmethod
    def verify_stability(self) -> bool:
        """Whether the architecture satisfies its stability condition."""

    def memory_estimate(self) -> int:
        """Parameter memory in bytes, assuming 32-bit floats."""
        return self.param_count() * _FLOAT32_BYTES


class ArchitectureType(Enum):
    """Available architecture variants."""

    DLINOSS_1327 = "D-LinOSS-1327"
    DLINOSS_LITE = "D-LinOSS-Lite"
    DLINOSS_MULTISCALE = "D-LinOSS-MultiScale"
    DLINOSS_CNN = "D-LinOSS-CNN"

    @staticmethod
    def all() -> list["ArchitectureType"]:
        """Every variant, in declaration order."""
        return list(ArchitectureType)

    def label(self) -> str:
        """Display name of the variant."""
        return self.value