"""
Benchmark functions for the climbers.

This module provides:
- The eight classic test functions, each a pure map from a position to a fitness
- A registry associating every function id with its evaluation and canonical bound
- Known minimizers, used to check the implementations

All functions are minimized; lower fitness is better.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

import numpy as np

from hillclimb.config import ConfigurationError


# =============================================================================
# Test Functions
# =============================================================================

def egg_holder(x: np.ndarray) -> float:
    """Egg Holder function - summed over adjacent coordinate pairs."""
    a, b = x[:-1], x[1:]
    terms = (
        -(b + 47) * np.sin(np.sqrt(np.abs(a / 2 + b + 47)))
        - a * np.sin(np.sqrt(np.abs(a - b - 47)))
    )
    return float(np.sum(terms))


def schwefel(x: np.ndarray) -> float:
    """Schwefel function - deceptive, optimum far from the next best."""
    return float(418.9829 * len(x) - np.sum(x * np.sin(np.sqrt(np.abs(x)))))


def rastrigin(x: np.ndarray) -> float:
    """Rastrigin function - highly multimodal."""
    A = 10.0
    n = len(x)
    return float(A * n + np.sum(x**2 - A * np.cos(2 * math.pi * x)))


def griewank(x: np.ndarray) -> float:
    """Griewank function - many widespread local minima."""
    sum_sq = np.sum(x**2 / 4000)
    prod_cos = np.prod(np.cos(x / np.sqrt(np.arange(1, len(x) + 1))))
    return float(sum_sq - prod_cos + 1)


def sphere(x: np.ndarray) -> float:
    """Sphere function - simplest convex quadratic."""
    return float(np.sum(x**2))


def dixon_price(x: np.ndarray) -> float:
    """Dixon-Price function - valley coupling each coordinate to the previous."""
    weights = np.arange(2, len(x) + 1)
    return float((x[0] - 1) ** 2 + np.sum(weights * (2 * x[1:] ** 2 - x[:-1]) ** 2))


def sum_squares(x: np.ndarray) -> float:
    return float(np.sum(np.arange(1, len(x) + 1) * x**2))


def sum_different_powers(x: np.ndarray) -> float:
    return float(np.sum(np.abs(x) ** np.arange(1, len(x) + 1)))


# =============================================================================
# Known minimizers
# =============================================================================

def _origin(dim: int) -> np.ndarray:
    return np.zeros(dim)


def _egg_holder_minimizer(dim: int) -> np.ndarray:
    if dim != 2:
        raise ValueError("Egg Holder minimizer is only tabulated for 2 dimensions")
    return np.array([512.0, 404.2319])


def _schwefel_minimizer(dim: int) -> np.ndarray:
    return np.full(dim, 420.9687)


def _dixon_price_minimizer(dim: int) -> np.ndarray:
    powers = 2.0 ** np.arange(1, dim + 1)
    return 2.0 ** (-(powers - 2) / powers)


@dataclass(frozen=True)
class BenchmarkFunction:
    """
    A benchmark function together with its canonical domain.

    Attributes:
        function_id: Selector used on the command line (1..8).
        name: Human-readable name.
        fn: Pure evaluation of a position.
        bound: Half-width of the symmetric search domain, per dimension.
        optimum: Known global minimum value (at 2 dimensions for Egg Holder).
        minimizer: Returns a known global minimizer for a dimension count.
    """

    function_id: int
    name: str
    fn: Callable[[np.ndarray], float]
    bound: float
    optimum: float
    minimizer: Callable[[int], np.ndarray]

    def __call__(self, x: np.ndarray) -> float:
        # Pathological inputs yield nan/inf rather than warnings or errors
        with np.errstate(all="ignore"):
            return self.fn(np.asarray(x, dtype=float))


# Registry of benchmark functions, keyed by function id
BENCHMARKS: dict[int, BenchmarkFunction] = {
    1: BenchmarkFunction(
        function_id=1,
        name="Egg Holder",
        fn=egg_holder,
        bound=512.0,
        optimum=-959.6407,
        minimizer=_egg_holder_minimizer,
    ),
    2: BenchmarkFunction(
        function_id=2,
        name="Schwefel",
        fn=schwefel,
        bound=500.0,
        optimum=0.0,
        minimizer=_schwefel_minimizer,
    ),
    3: BenchmarkFunction(
        function_id=3,
        name="Rastrigin",
        fn=rastrigin,
        bound=5.12,
        optimum=0.0,
        minimizer=_origin,
    ),
    4: BenchmarkFunction(
        function_id=4,
        name="Griewank",
        fn=griewank,
        bound=600.0,
        optimum=0.0,
        minimizer=_origin,
    ),
    5: BenchmarkFunction(
        function_id=5,
        name="Sphere",
        fn=sphere,
        bound=5.12,
        optimum=0.0,
        minimizer=_origin,
    ),
    6: BenchmarkFunction(
        function_id=6,
        name="Dixon-Price",
        fn=dixon_price,
        bound=10.0,
        optimum=0.0,
        minimizer=_dixon_price_minimizer,
    ),
    7: BenchmarkFunction(
        function_id=7,
        name="Sum Squares",
        fn=sum_squares,
        bound=10.0,
        optimum=0.0,
        minimizer=_origin,
    ),
    8: BenchmarkFunction(
        function_id=8,
        name="Sum of Different Powers",
        fn=sum_different_powers,
        bound=1.0,
        optimum=0.0,
        minimizer=_origin,
    ),
}


def get_benchmark(function_id: int) -> BenchmarkFunction:
    """
    Look up a benchmark function by id.

    Args:
        function_id: The selector, 1..8.

    Returns:
        The matching BenchmarkFunction.

    Raises:
        ConfigurationError: If the id is not in the registry.
    """
    try:
        return BENCHMARKS[function_id]
    except KeyError:
        raise ConfigurationError("Invalid function type.") from None
