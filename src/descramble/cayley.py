"""
Cayley parametrization of the orthogonal group by skew-symmetric generators.

  Q = L - L^T,  L strictly lower triangular   (n(n-1)/2 free parameters)
  P = (I + Q)^{-1} (I - Q)

For real skew-symmetric Q the eigenvalues are purely imaginary, so I + Q is
always invertible and P is orthogonal. Q = 0 maps to P = I.

Parameter order is column-major over the strictly lower triangle:
  q = [Q[1,0], Q[2,0], ..., Q[n-1,0], Q[2,1], ..., Q[n-1,n-2]]
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import scipy.linalg as la


ORTHOGONALITY_TOL = 1e-8


def opt_dim(n: int) -> int:
    """Number of free parameters of an n x n skew-symmetric generator."""
    n = int(n)
    return (n * n - n) // 2


def lower_triangle_indices(n: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Strictly-lower-triangular (rows, cols) in column-major order.

    Returns:
      rows, cols: (n(n-1)/2,) int64.
    """
    upper_r, upper_c = np.triu_indices(int(n), k=1)
    return upper_c.astype(np.int64), upper_r.astype(np.int64)


def _as_real_matrix(M: np.ndarray, name: str) -> np.ndarray:
    A = np.asarray(M)
    if A.dtype == object or not np.issubdtype(A.dtype, np.number):
        raise ValueError(f"{name} must be a real numeric matrix.")
    if np.iscomplexobj(A):
        raise ValueError(f"{name} must be real.")
    A = A.astype(np.float64, copy=False)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"{name} must be a square matrix; got shape {A.shape}.")
    if not bool(np.all(np.isfinite(A))):
        raise ValueError(f"{name} must be finite.")
    return A


def cayley_transform(Q: np.ndarray) -> np.ndarray:
    """P = (I + Q)^{-1} (I - Q) via a linear solve (no explicit inverse)."""
    Q = np.asarray(Q, dtype=np.float64)
    I = np.eye(Q.shape[0], dtype=np.float64)
    return la.solve(I + Q, I - Q, check_finite=False)


@dataclass(frozen=True)
class OrthogonalMatrix:
    """Orthogonal change of basis P (n, n); P^{-1} = P^T."""

    matrix: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "matrix", _as_real_matrix(self.matrix, "P"))
        err = self.orthogonality_error()
        if err > ORTHOGONALITY_TOL * max(1, self.n):
            raise ValueError(f"P is not orthogonal: ||P P^T - I||_F = {err:.3e}.")

    @property
    def n(self) -> int:
        return int(self.matrix.shape[0])

    @property
    def inverse(self) -> np.ndarray:
        return self.matrix.T

    def orthogonality_error(self) -> float:
        """||P P^T - I||_F."""
        P = self.matrix
        return float(np.linalg.norm(P @ P.T - np.eye(self.n), ord="fro"))

    def apply(self, W: np.ndarray) -> np.ndarray:
        """P W: rotate the output (row) dimension of W."""
        W = np.asarray(W, dtype=np.float64)
        if W.shape[0] != self.n:
            raise ValueError(f"W must have {self.n} rows; got shape {W.shape}.")
        return self.matrix @ W

    def apply_inverse_right(self, U: np.ndarray) -> np.ndarray:
        """U P^T: compensate the input (column) dimension of the next layer."""
        U = np.asarray(U, dtype=np.float64)
        if U.ndim != 2 or U.shape[1] != self.n:
            raise ValueError(f"U must have {self.n} columns; got shape {U.shape}.")
        return U @ self.matrix.T


@dataclass(frozen=True)
class SkewGenerator:
    """
    Skew-symmetric generator stored by its strictly-lower-triangular entries.

    Fields:
      - params: (n(n-1)/2,) parameter vector q, column-major lower triangle
      - n: matrix dimension
    """

    params: np.ndarray
    n: int

    def __post_init__(self) -> None:
        n = int(self.n)
        if n < 1:
            raise ValueError("n must be positive.")
        q = np.asarray(self.params)
        if np.iscomplexobj(q) or not np.issubdtype(q.dtype, np.number):
            raise ValueError("Generator parameters must be real numbers.")
        q = q.astype(np.float64).reshape(-1)
        if q.size != opt_dim(n):
            raise ValueError(
                f"Generator for n={n} needs {opt_dim(n)} parameters; got {q.size}."
            )
        if not bool(np.all(np.isfinite(q))):
            raise ValueError("Generator parameters must be finite.")
        q.setflags(write=False)
        object.__setattr__(self, "params", q)
        object.__setattr__(self, "n", n)

    @classmethod
    def zeros(cls, n: int) -> "SkewGenerator":
        return cls(np.zeros((opt_dim(n),), dtype=np.float64), n)

    @classmethod
    def from_params(cls, q: np.ndarray, n: int) -> "SkewGenerator":
        return cls(np.array(q, copy=True), n)

    @classmethod
    def from_matrix(cls, G: np.ndarray) -> "SkewGenerator":
        """Take the strictly lower triangle of a square matrix; the rest is ignored."""
        G = _as_real_matrix(G, "guess")
        n = int(G.shape[0])
        rows, cols = lower_triangle_indices(n)
        return cls(G[rows, cols].copy(), n)

    @property
    def matrix(self) -> np.ndarray:
        rows, cols = lower_triangle_indices(self.n)
        L = np.zeros((self.n, self.n), dtype=np.float64)
        L[rows, cols] = self.params
        return L - L.T

    def cayley(self) -> OrthogonalMatrix:
        return OrthogonalMatrix(cayley_transform(self.matrix))
