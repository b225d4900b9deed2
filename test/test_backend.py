"""
Tests for the dense linear-algebra backends.
"""
from __future__ import annotations

import numpy as np
import pytest

from descramble.backend import NumpyBackend, get_backend
from descramble.cayley import SkewGenerator, lower_triangle_indices, opt_dim
from descramble.objective import build_context, make_evaluator
from descramble.solve import DescrambleConfig, descramble


# --- Numpy ---

def test_get_backend():
    assert isinstance(get_backend("numpy"), NumpyBackend)
    assert isinstance(get_backend("NumPy"), NumpyBackend)
    with pytest.raises(ValueError):
        get_backend("tpu-v9")


def test_numpy_skew_from_lower_matches_generator():
    rng = np.random.default_rng(0)
    q = rng.standard_normal(opt_dim(6))
    rows, cols = lower_triangle_indices(6)
    Q = NumpyBackend().skew_from_lower(q, rows, cols, 6)
    np.testing.assert_array_equal(Q, SkewGenerator.from_params(q, 6).matrix)


def test_numpy_spectral_norm():
    A = np.diag([3.0, -7.0, 1.0])
    assert NumpyBackend().spectral_norm(A) == pytest.approx(7.0)


# --- JAX ---

def test_jax_evaluator_matches_numpy():
    pytest.importorskip("jax")
    rng = np.random.default_rng(1)
    S = rng.standard_normal((7, 40))
    f_np = make_evaluator(build_context(S, backend="numpy"))
    f_jax = make_evaluator(build_context(S, backend="jax"))
    for _ in range(3):
        q = 0.3 * rng.standard_normal(opt_dim(7))
        eta_np, g_np = f_np(q)
        eta_jax, g_jax = f_jax(q)
        assert isinstance(eta_jax, float)
        assert g_jax.dtype == np.float64
        np.testing.assert_allclose(eta_jax, eta_np, rtol=1e-10)
        np.testing.assert_allclose(g_jax, g_np, rtol=1e-8, atol=1e-10)


def test_jax_descramble_matches_numpy():
    pytest.importorskip("jax")
    rng = np.random.default_rng(2)
    S = rng.standard_normal((4, 100))
    res_np = descramble(S, 50)
    res_jax = descramble(S, 50, config=DescrambleConfig(backend="jax"))
    np.testing.assert_allclose(res_jax.P @ res_jax.P.T, np.eye(4), atol=1e-10)
    np.testing.assert_allclose(res_jax.eta_initial, res_np.eta_initial, rtol=1e-10)
    assert res_jax.eta <= res_jax.eta_initial
    np.testing.assert_allclose(res_jax.eta, res_np.eta, rtol=1e-4)
