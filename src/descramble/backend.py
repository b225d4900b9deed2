"""
Dense linear-algebra backends for the smoothness evaluator.

Both backends expose the same small surface so the evaluator can be written
once against these helpers:
  - asarray / to_numpy: move data in and out (float64 throughout)
  - inv, trace, eye: dense kernels
  - spectral_norm: largest singular value (host float)
  - skew_from_lower: Q = L - L^T from strictly-lower-triangular parameters
  - compile: jax.jit on the jax backend, identity on numpy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import numpy as np


@dataclass(frozen=True)
class NumpyBackend:
    """CPU backend on numpy/LAPACK."""

    name: str = "numpy"

    def asarray(self, x) -> np.ndarray:
        return np.asarray(x, dtype=np.float64)

    def to_numpy(self, x) -> np.ndarray:
        return np.asarray(x, dtype=np.float64)

    def eye(self, n: int) -> np.ndarray:
        return np.eye(int(n), dtype=np.float64)

    def inv(self, A: np.ndarray) -> np.ndarray:
        return np.linalg.inv(A)

    def trace(self, A: np.ndarray):
        return np.trace(A)

    def spectral_norm(self, A) -> float:
        return float(np.linalg.norm(np.asarray(A, dtype=np.float64), 2))

    def skew_from_lower(self, q, rows: np.ndarray, cols: np.ndarray, n: int) -> np.ndarray:
        L = np.zeros((int(n), int(n)), dtype=np.float64)
        L[rows, cols] = q
        return L - L.T

    def compile(self, fn: Callable) -> Callable:
        return fn


@dataclass(frozen=True)
class JaxBackend:
    """
    Accelerator backend on jax (CPU/GPU/TPU, whichever jax was installed for).

    Float64 is enabled globally on construction; descrambling is sensitive to
    roundoff in the inverse of I + Q.
    """

    name: str = "jax"
    _jax: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            import jax  # type: ignore
        except ModuleNotFoundError as e:
            raise ModuleNotFoundError(
                "jax is required for backend='jax'. "
                "Either install jax for your accelerator, or use backend='numpy'."
            ) from e
        jax.config.update("jax_enable_x64", True)
        object.__setattr__(self, "_jax", jax)

    def asarray(self, x):
        return self._jax.numpy.asarray(x, dtype=self._jax.numpy.float64)

    def to_numpy(self, x) -> np.ndarray:
        return np.asarray(x, dtype=np.float64)

    def eye(self, n: int):
        return self._jax.numpy.eye(int(n), dtype=self._jax.numpy.float64)

    def inv(self, A):
        return self._jax.numpy.linalg.inv(A)

    def trace(self, A):
        return self._jax.numpy.trace(A)

    def spectral_norm(self, A) -> float:
        return float(self._jax.numpy.linalg.norm(A, 2))

    def skew_from_lower(self, q, rows: np.ndarray, cols: np.ndarray, n: int):
        jnp = self._jax.numpy
        L = jnp.zeros((int(n), int(n)), dtype=jnp.float64).at[rows, cols].set(q)
        return L - L.T

    def compile(self, fn: Callable) -> Callable:
        return self._jax.jit(fn)


BACKENDS = {
    "numpy": NumpyBackend,
    "jax": JaxBackend,
}


def get_backend(name: str = "numpy"):
    """Resolve a backend by name ('numpy' or 'jax')."""
    key = str(name).lower()
    if key not in BACKENDS:
        raise ValueError(f"Unknown backend {name!r}; expected one of {sorted(BACKENDS)}.")
    return BACKENDS[key]()
