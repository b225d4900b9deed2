"""
Fourier spectral differentiation matrices on a periodic grid.

Conventions:
  - n equispaced points on one period, x_k = 2*pi*k/n, k = 0..n-1.
  - D is circulant: D[j, k] depends only on (j - k) mod n.
  - The spectral symbol of the order-m derivative is (i*kappa)^m with integer
    wavenumbers kappa = 0, 1, ..., -1 (numpy fftfreq order).

For even n the Nyquist wavenumber kappa = n/2 is kept for even orders and
zeroed for odd orders (an odd derivative of the Nyquist mode is not real).
At order 2 this gives the Weideman-Reddy diagonals:
  - even n: D[0, 0] = -(n^2/12 + 1/6)
  - odd n:  D[0, 0] = -(n^2 - 1)/12
"""

from __future__ import annotations

import numpy as np


def _check_size(n: int, order: int) -> tuple[int, int]:
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise ValueError("n must be an integer.")
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
        raise ValueError("order must be an integer.")
    if int(n) < 2:
        raise ValueError("n must be at least 2.")
    if int(order) < 1:
        raise ValueError("order must be a positive integer.")
    return int(n), int(order)


def _spectral_symbol(n: int, order: int) -> np.ndarray:
    """(n,) complex symbol (i*kappa)^order in numpy FFT ordering."""
    kappa = np.fft.fftfreq(n, d=1.0 / n)  # (n,) integers as float
    if n % 2 == 0 and order % 2 == 1:
        kappa[n // 2] = 0.0
    return (1j * kappa) ** order


def fourier_diff_matrix(n: int, order: int = 2) -> tuple[np.ndarray, np.ndarray]:
    """
    Spectral differentiation matrix of the given order on a periodic grid.

    The first column of the circulant matrix is the inverse FFT of the
    spectral symbol; applying D to samples of a band-limited periodic signal
    returns the exact derivative samples.

    Args:
      n: number of grid points (>= 2).
      order: derivative order (>= 1).

    Returns:
      x: (n,) grid points on [0, 2*pi).
      D: (n, n) real differentiation matrix.
    """
    n, order = _check_size(n, order)
    x = 2.0 * np.pi * np.arange(n, dtype=np.float64) / n

    col = np.fft.ifft(_spectral_symbol(n, order)).real  # (n,) = D[:, 0]
    j = np.arange(n)
    D = col[(j[:, None] - j[None, :]) % n]
    return x, np.asarray(D, dtype=np.float64)


def second_derivative_operator(n: int) -> np.ndarray:
    """(n, n) periodic second-derivative (roughness) operator."""
    _, D = fourier_diff_matrix(n, 2)
    return D
