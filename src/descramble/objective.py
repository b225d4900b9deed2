"""
Tikhonov smoothness objective over Cayley-parametrized orthogonal matrices.

With scaled cross-products (computed once per problem)

  SST = n * S S^T / ||S S^T||_2,     DTD = n * D^T D / ||D^T D||_2

and P = (I + Q)^{-1} (I - Q), the objective and its gradient are

  eta(q)   = trace(DTD P SST P^T)
  G        = -2 (I + Q)^{-T} DTD P SST (I + P)^T
  grad(q)  = (G - G^T)[rows, cols]

where (rows, cols) index the strictly lower triangle (see `cayley`). The
inverse of I + Q is formed once per evaluation and reused for P and G.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from .backend import get_backend
from .cayley import lower_triangle_indices, opt_dim
from .operator import fourier_diff_matrix


def check_signal(S: np.ndarray) -> np.ndarray:
    """Validate the signal matrix and return it as float64 (d, m)."""
    A = np.asarray(S)
    if A.dtype == object or not np.issubdtype(A.dtype, np.number):
        raise ValueError("S must be a real matrix.")
    if np.iscomplexobj(A):
        raise ValueError("S must be a real matrix.")
    if A.ndim != 2:
        raise ValueError(f"S must be 2-D (d, m); got ndim={A.ndim}.")
    if A.shape[0] < 2:
        raise ValueError("S must have at least 2 rows (output dimension d >= 2).")
    if A.shape[1] < 1:
        raise ValueError("S must have at least one column.")
    A = A.astype(np.float64, copy=False)
    if not bool(np.all(np.isfinite(A))):
        raise ValueError("S must be finite.")
    return A


def _scaled(M, n: int, label: str, backend):
    nrm = backend.spectral_norm(M)
    if not np.isfinite(nrm) or nrm <= 0.0:
        raise ValueError(f"{label} has zero spectral norm; cannot scale the objective.")
    return float(n) * M / nrm


@dataclass(frozen=True)
class SmoothnessContext:
    """
    Immutable per-problem state shared by every objective evaluation.

    Fields:
      - n: output dimension d of the layer being descrambled
      - sst: (n, n) scaled S S^T on the backend
      - dtd: (n, n) scaled D^T D on the backend
      - rows, cols: (opt_dim,) strictly-lower-triangle indices
      - backend: dense linear-algebra backend
    """

    n: int
    sst: object
    dtd: object
    rows: np.ndarray
    cols: np.ndarray
    backend: object

    @property
    def opt_dim(self) -> int:
        return opt_dim(self.n)


def build_context(S: np.ndarray, *, backend="numpy", derivative_order: int = 2) -> SmoothnessContext:
    """
    Precompute the scaled cross-products for a signal matrix S (d, m).

    The roughness operator is the order-`derivative_order` Fourier
    differentiation matrix on d points (second derivative by default).
    """
    S = check_signal(S)
    n = int(S.shape[0])
    if isinstance(backend, str):
        backend = get_backend(backend)

    _, D = fourier_diff_matrix(n, derivative_order)
    sst = _scaled(backend.asarray(S @ S.T), n, "S S^T", backend)
    dtd = _scaled(backend.asarray(D.T @ D), n, "D^T D", backend)

    rows, cols = lower_triangle_indices(n)
    return SmoothnessContext(
        n=n,
        sst=sst,
        dtd=dtd,
        rows=rows,
        cols=cols,
        backend=backend,
    )


def _kernel(ctx: SmoothnessContext) -> Callable:
    """Backend-native q -> (eta, grad); no host transfers inside."""
    be = ctx.backend
    n, rows, cols = ctx.n, ctx.rows, ctx.cols
    sst, dtd = ctx.sst, ctx.dtd
    I = be.eye(n)

    def reg_sig(q):
        Q = be.skew_from_lower(q, rows, cols, n)
        iUpQ = be.inv(I + Q)
        P = iUpQ @ (I - Q)
        DTDPSST = dtd @ P @ sst
        eta = be.trace(DTDPSST @ P.T)
        G = -2.0 * iUpQ.T @ DTDPSST @ (I + P).T
        G = G - G.T
        return eta, G[rows, cols]

    return reg_sig


def make_evaluator(ctx: SmoothnessContext) -> Callable[[np.ndarray], tuple[float, np.ndarray]]:
    """
    Build the optimizer callback q -> (eta, grad) with host float64 outputs.

    The dense kernel is compiled once (jax.jit) on accelerator backends.
    """
    be = ctx.backend
    kernel = be.compile(_kernel(ctx))
    n_params = ctx.opt_dim

    def evaluate_q(q: np.ndarray) -> tuple[float, np.ndarray]:
        q = np.asarray(q, dtype=np.float64).reshape(-1)
        if q.size != n_params:
            raise ValueError(f"q must have length {n_params} for n={ctx.n}; got {q.size}.")
        eta, grad = kernel(be.asarray(q))
        return float(eta), be.to_numpy(grad).reshape(-1)

    return evaluate_q


def evaluate(q: np.ndarray, ctx: SmoothnessContext) -> tuple[float, np.ndarray]:
    """Objective and gradient at q (one-off; use `make_evaluator` in loops)."""
    return make_evaluator(ctx)(q)


def smoothness(P: np.ndarray, ctx: SmoothnessContext) -> float:
    """eta for an explicit (n, n) matrix P: trace(DTD P SST P^T)."""
    P = np.asarray(P, dtype=np.float64)
    if P.shape != (ctx.n, ctx.n):
        raise ValueError(f"P must have shape {(ctx.n, ctx.n)}; got {P.shape}.")
    be = ctx.backend
    sst = be.to_numpy(ctx.sst)
    dtd = be.to_numpy(ctx.dtd)
    return float(np.trace(dtd @ P @ sst @ P.T))
