"""
Tests for the smoothness objective: scaling, analytic gradient, input checks.
"""
from __future__ import annotations

import numpy as np
import pytest

from descramble.cayley import SkewGenerator, opt_dim
from descramble.objective import build_context, evaluate, make_evaluator, smoothness
from descramble.operator import second_derivative_operator


def _central_difference(f, q: np.ndarray, h: float = 1e-5) -> np.ndarray:
    g = np.zeros_like(q)
    for i in range(q.size):
        e = np.zeros_like(q)
        e[i] = h
        g[i] = (f(q + e) - f(q - e)) / (2.0 * h)
    return g


# --- Context ---

def test_context_scaling():
    """Scaled S S^T and D^T D both have spectral norm d."""
    rng = np.random.default_rng(0)
    S = 1e3 * rng.standard_normal((7, 50))
    ctx = build_context(S)
    assert ctx.n == 7
    assert ctx.opt_dim == opt_dim(7)
    np.testing.assert_allclose(np.linalg.norm(ctx.sst, 2), 7.0, rtol=1e-12)
    np.testing.assert_allclose(np.linalg.norm(ctx.dtd, 2), 7.0, rtol=1e-12)


def test_objective_invariant_to_signal_scale():
    rng = np.random.default_rng(1)
    S = rng.standard_normal((6, 30))
    q = 0.2 * rng.standard_normal(opt_dim(6))
    eta_a, grad_a = evaluate(q, build_context(S))
    eta_b, grad_b = evaluate(q, build_context(123.0 * S))
    np.testing.assert_allclose(eta_a, eta_b, rtol=1e-12)
    np.testing.assert_allclose(grad_a, grad_b, rtol=1e-10, atol=1e-12)


@pytest.mark.parametrize(
    "S",
    [
        np.ones((4, 5), dtype=complex),
        np.array([["a", "b"], ["c", "d"]]),
        np.ones((4,)),
        np.ones((1, 10)),
        np.full((3, 3), np.nan),
        np.zeros((4, 6)),
        np.ones((4, 6), dtype=bool),
    ],
)
def test_context_rejects_bad_signal(S):
    with pytest.raises(ValueError):
        build_context(S)


# --- Objective ---

def test_objective_at_zero_is_trace():
    """q = 0 gives P = I and eta = trace(DTD SST)."""
    rng = np.random.default_rng(2)
    ctx = build_context(rng.standard_normal((5, 40)))
    eta, _ = evaluate(np.zeros(opt_dim(5)), ctx)
    np.testing.assert_allclose(eta, np.trace(ctx.dtd @ ctx.sst), rtol=1e-12)


def test_objective_is_nonnegative():
    rng = np.random.default_rng(3)
    ctx = build_context(rng.standard_normal((8, 20)))
    f = make_evaluator(ctx)
    for _ in range(20):
        eta, _ = f(rng.standard_normal(opt_dim(8)))
        assert eta >= -1e-10


def test_objective_matches_explicit_rotation():
    rng = np.random.default_rng(4)
    ctx = build_context(rng.standard_normal((6, 25)))
    q = rng.standard_normal(opt_dim(6))
    P = SkewGenerator.from_params(q, 6).cayley().matrix
    eta, _ = evaluate(q, ctx)
    np.testing.assert_allclose(eta, smoothness(P, ctx), rtol=1e-10)


def test_objective_rejects_wrong_length():
    ctx = build_context(np.random.default_rng(5).standard_normal((4, 10)))
    with pytest.raises(ValueError):
        evaluate(np.zeros(5), ctx)
    with pytest.raises(ValueError):
        smoothness(np.eye(3), ctx)


# --- Gradient ---

@pytest.mark.parametrize("seed", [0, 1, 2])
@pytest.mark.parametrize("n", [3, 6, 9])
def test_gradient_matches_central_difference(seed, n):
    """Analytic gradient agrees with centered finite differences."""
    rng = np.random.default_rng(100 * n + seed)
    ctx = build_context(rng.standard_normal((n, 4 * n)))
    f = make_evaluator(ctx)
    q = 0.3 * rng.standard_normal(opt_dim(n))
    _, grad = f(q)
    fd = _central_difference(lambda x: f(x)[0], q)
    scale = max(1.0, float(np.max(np.abs(fd))))
    np.testing.assert_allclose(grad, fd, rtol=1e-5, atol=1e-6 * scale)


def test_gradient_vanishes_when_products_commute():
    """S S^T a function of D^T D: identity is a stationary point."""
    n = 8
    D = second_derivative_operator(n)
    lam, V = np.linalg.eigh(D.T @ D)
    S = V @ np.diag(1.0 / (1.0 + lam)) @ V.T
    ctx = build_context(S)
    _, grad = evaluate(np.zeros(opt_dim(n)), ctx)
    assert np.linalg.norm(grad) < 1e-10
