"""
SeedBundle and PositionSampler: per-climber random sources.

A SeedBundle provides:
- A root seed, time-based unless fixed for reproducibility
- Deterministic sub-seed derivation via sha256
- Independent NumPy generators, one per climber, so no generator is shared
  between threads

A PositionSampler draws uniform positions from one of those generators.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.random import Generator


def _normalize_seed(seed: int) -> int:
    """Normalize seed to numpy-compatible range."""
    return abs(seed) % (2**32)


@dataclass(frozen=True)
class SeedBundle:
    """
    Root of all randomness in a run.

    Attributes:
        root_seed: The base seed for all derivations.
    """

    root_seed: int

    @classmethod
    def from_time(cls) -> SeedBundle:
        """Create a bundle seeded from the wall clock."""
        return cls(root_seed=time.time_ns())

    @classmethod
    def create(cls, seed: int | None = None) -> SeedBundle:
        """Use *seed* when given, otherwise seed from the wall clock."""
        if seed is None:
            return cls.from_time()
        return cls(root_seed=seed)

    def derive(self, name: str) -> int:
        """
        Derive a sub-seed deterministically from root + name.

        Uses SHA-256 for cross-platform stability.

        Args:
            name: A unique name for this sub-seed (e.g., "climber:1").

        Returns:
            A 64-bit integer seed.
        """
        data = f"{self.root_seed}:{name}"
        h = hashlib.sha256(data.encode("utf-8")).digest()
        return int.from_bytes(h[:8], "big")

    def numpy_seed(self, name: str = "default") -> int:
        """Return a NumPy-safe integer seed derived from this bundle."""
        return _normalize_seed(self.derive(name))

    def numpy(self, name: str = "default") -> Generator:
        """
        Create a NumPy Generator instance seeded from this bundle.

        Example:
            bundle = SeedBundle(root_seed=42)
            rng = bundle.numpy("climber:1")
            values = rng.random(100)
        """
        return np.random.default_rng(self.numpy_seed(name))

    def to_dict(self) -> dict[str, Any]:
        return {"root_seed": self.root_seed}


class PositionSampler:
    """
    Uniform position sampler bound to a single generator.

    Not thread-safe: each climber owns its own sampler.
    """

    def __init__(self, rng: Generator, dimensions: int) -> None:
        """
        Initialize the sampler.

        Args:
            rng: Generator owned by this sampler.
            dimensions: Length of every sampled position.
        """
        self._rng = rng
        self._dimensions = dimensions

    def sample(self, low: float, high: float) -> np.ndarray:
        """
        Draw a fresh position with every component uniform in [low, high).

        The returned array is read-only.
        """
        position = self._rng.uniform(low, high, size=self._dimensions)
        position.flags.writeable = False
        return position
