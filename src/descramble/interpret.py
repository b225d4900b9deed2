"""
Signal assembly at a wiretap point and analysis of descrambled weights.

Two-layer network convention (columns of X are inputs):
  hidden = f(W X),    output = U hidden
  W: (n_link, n_in),  U: (n_out, n_link)

Wiretap before the activation: S = W X, and P W is the descrambled first layer.
Wiretap after the activation: S = f(W X), and U P^T is the descrambled second
layer (P^T = P^{-1} acts on its input/link dimension).

Since P is orthogonal, (U P^T)(P W) = U W: rotating both sides of the link
dimension leaves a linear link unchanged.
"""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.polynomial import chebyshev


ACTIVATIONS: dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "tanh": np.tanh,
    "tansig": np.tanh,
    "linear": lambda z: z,
}


def _as_matrix(M: np.ndarray, name: str) -> np.ndarray:
    A = np.asarray(M)
    if np.iscomplexobj(A) or not np.issubdtype(A.dtype, np.number):
        raise ValueError(f"{name} must be a real numeric matrix.")
    if A.ndim != 2:
        raise ValueError(f"{name} must be 2-D; got ndim={A.ndim}.")
    return A.astype(np.float64, copy=False)


def _resolve_activation(activation) -> Callable[[np.ndarray], np.ndarray] | None:
    if activation is None or callable(activation):
        return activation
    key = str(activation).lower()
    if key not in ACTIVATIONS:
        raise ValueError(f"Unknown activation {activation!r}; expected one of {sorted(ACTIVATIONS)}.")
    return ACTIVATIONS[key]


def wiretap_signal(W: np.ndarray, X: np.ndarray, activation=None) -> np.ndarray:
    """
    Layer outputs over an input library.

    Args:
      W: (n_link, n_in) weight matrix.
      X: (n_in, m) inputs in columns.
      activation: None (wiretap before f), a callable, or a name in ACTIVATIONS.

    Returns:
      S: (n_link, m).
    """
    W = _as_matrix(W, "W")
    X = _as_matrix(X, "X")
    if W.shape[1] != X.shape[0]:
        raise ValueError(f"W (n_link, n_in)={W.shape} does not match X (n_in, m)={X.shape}.")
    S = W @ X
    f = _resolve_activation(activation)
    if f is not None:
        S = np.asarray(f(S), dtype=np.float64)
    return S


def augmented_signal(U: np.ndarray, hidden: np.ndarray) -> np.ndarray:
    """
    Signal for descrambling the link dimension of the second layer.

    Stacks the second-layer weights (as columns) next to the hidden
    activations, with the weights rescaled to the activations' spectral norm:

      S = [mult * U^T, hidden],   mult = ||hidden||_2 / ||U^T||_2

    Args:
      U: (n_out, n_link).
      hidden: (n_link, m) activations f(W X).

    Returns:
      S: (n_link, n_out + m).
    """
    U = _as_matrix(U, "U")
    hidden = _as_matrix(hidden, "hidden")
    if U.shape[1] != hidden.shape[0]:
        raise ValueError(f"U (n_out, n_link)={U.shape} does not match hidden (n_link, m)={hidden.shape}.")
    u_norm = float(np.linalg.norm(U.T, 2))
    if u_norm <= 0.0:
        raise ValueError("U has zero spectral norm.")
    mult = float(np.linalg.norm(hidden, 2)) / u_norm
    return np.concatenate([mult * U.T, hidden], axis=1)


def descramble_weights(W: np.ndarray, P: np.ndarray) -> np.ndarray:
    """P W: descrambled output dimension of a layer wiretapped before f."""
    W = _as_matrix(W, "W")
    P = _as_matrix(P, "P")
    if P.shape != (W.shape[0], W.shape[0]):
        raise ValueError(f"P must be ({W.shape[0]}, {W.shape[0]}); got {P.shape}.")
    return P @ W


def descramble_next_layer(U: np.ndarray, P: np.ndarray) -> np.ndarray:
    """U P^T: descrambled input dimension of the layer after the wiretap."""
    U = _as_matrix(U, "U")
    P = _as_matrix(P, "P")
    if P.shape != (U.shape[1], U.shape[1]):
        raise ValueError(f"P must be ({U.shape[1]}, {U.shape[1]}); got {P.shape}.")
    return U @ P.T


def fourier_image(W1: np.ndarray) -> np.ndarray:
    """
    Symmetrized 2D magnitude spectrum of a descrambled weight matrix.

      F = fftshift(fft2(W1))
      out = |F| + |roll(fliplr(F), 1, axis=1)|

    The flipped copy folds the +/- link-dimension frequencies onto each other.
    """
    W1 = _as_matrix(W1, "W1")
    F = np.fft.fftshift(np.fft.fft2(W1))
    return np.abs(F) + np.abs(np.roll(np.fliplr(F), 1, axis=1))


def singular_modes(U1: np.ndarray, k: int | None = None) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Economy SVD U1 = L diag(s) R^T.

    Returns:
      L: (n_rows, k) left singular vectors
      s: (k,) singular values, descending
      R: (n_cols, k) right singular vectors
    """
    U1 = _as_matrix(U1, "U1")
    L, s, Rt = np.linalg.svd(U1, full_matrices=False)
    if k is not None:
        k = int(k)
        if k < 1 or k > s.size:
            raise ValueError(f"k must be in [1, {s.size}]; got {k}.")
        L, s, Rt = L[:, :k], s[:k], Rt[:k, :]
    return L, s, Rt.T


def chebyshev_fit(vectors: np.ndarray, degrees) -> tuple[np.ndarray, np.ndarray]:
    """
    Project mean-centered vectors onto single Chebyshev polynomials.

    Column j of `vectors` is compared with T_{degrees[j]} sampled on an
    equispaced grid over [-1, 1]; the amplitude is the least-squares
    coefficient a_j = <v_j, T> / <T, T>.

    Args:
      vectors: (n, k) columns, e.g. left singular vectors.
      degrees: (k,) polynomial degree per column.

    Returns:
      amplitudes: (k,)
      fitted: (n, k) a_j * T_{degrees[j]}
    """
    V = _as_matrix(vectors, "vectors")
    deg = np.asarray(degrees, dtype=np.int64).reshape(-1)
    if deg.size != V.shape[1]:
        raise ValueError(f"degrees must have {V.shape[1]} entries; got {deg.size}.")
    if bool(np.any(deg < 0)):
        raise ValueError("degrees must be non-negative.")

    V = V - np.mean(V, axis=0, keepdims=True)
    t = np.linspace(-1.0, 1.0, V.shape[0])
    amplitudes = np.zeros((deg.size,), dtype=np.float64)
    fitted = np.zeros_like(V)
    for j, k in enumerate(deg):
        T = chebyshev.chebval(t, np.eye(int(k) + 1)[int(k)])
        tt = float(np.dot(T, T))
        a = float(np.dot(V[:, j], T)) / tt if tt > 0 else 0.0
        amplitudes[j] = a
        fitted[:, j] = a * T
    return amplitudes, fitted
